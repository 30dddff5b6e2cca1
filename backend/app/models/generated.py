from sqlalchemy import Column, Date, DateTime, ForeignKey, Index, Integer, Text, func, text

from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()
metadata = Base.metadata


class Clients(Base):
    __tablename__ = 'clients'

    name = Column(Text, nullable=False)
    email = Column(Text, nullable=False, unique=True)
    credits_per_month = Column(Integer, nullable=False, server_default=text('0'))
    is_active = Column(Integer, nullable=False, server_default=text('1'))
    id = Column(Integer, primary_key=True)
    created_at = Column(DateTime, nullable=False, server_default=func.current_timestamp())

    bookings = relationship('Bookings', back_populates='client')
    recurring_holds = relationship('RecurringHolds', back_populates='client')


class AvailabilityRules(Base):
    __tablename__ = 'availability_rules'

    day_of_week = Column(Integer, nullable=False)  # 1 = Monday .. 7 = Sunday
    start_time = Column(Text, nullable=False)  # "HH:MM"
    end_time = Column(Text, nullable=False)
    id = Column(Integer, primary_key=True)


class AvailabilityOverrides(Base):
    __tablename__ = 'availability_overrides'
    __table_args__ = (
        Index('ix_availability_overrides_date', 'date'),
    )

    date = Column(Date, nullable=False)
    start_time = Column(Text, nullable=False)
    end_time = Column(Text, nullable=False)
    override_type = Column(Text, nullable=False)  # OPEN | BLOCK
    id = Column(Integer, primary_key=True)
    note = Column(Text)


class RecurringHolds(Base):
    __tablename__ = 'recurring_holds'

    day_of_week = Column(Integer, nullable=False)
    start_time = Column(Text, nullable=False)
    end_time = Column(Text, nullable=False)
    id = Column(Integer, primary_key=True)
    client_id = Column(ForeignKey('clients.id', ondelete='SET NULL'))
    note = Column(Text)

    client = relationship('Clients', back_populates='recurring_holds')


class Blocks(Base):
    __tablename__ = 'blocks'

    start_at = Column(DateTime, nullable=False)
    end_at = Column(DateTime, nullable=False)
    id = Column(Integer, primary_key=True)
    reason = Column(Text)


class Bookings(Base):
    __tablename__ = 'bookings'
    __table_args__ = (
        Index('ix_bookings_start_end', 'start_at', 'end_at'),
        Index('ix_bookings_client_start', 'client_id', 'start_at'),
    )

    client_id = Column(ForeignKey('clients.id', ondelete='CASCADE'), nullable=False)
    start_at = Column(DateTime, nullable=False)
    end_at = Column(DateTime, nullable=False)
    status = Column(Text, nullable=False, server_default=text("'CONFIRMED'"))
    mode = Column(Text, nullable=False, server_default=text("'VISIO'"))
    id = Column(Integer, primary_key=True)
    manage_token = Column(Text, unique=True)
    manage_token_expires_at = Column(DateTime)
    cancel_reason = Column(Text)
    reschedule_reason = Column(Text)
    created_at = Column(DateTime, nullable=False, server_default=func.current_timestamp())
    updated_at = Column(
        DateTime,
        nullable=False,
        server_default=func.current_timestamp(),
        onupdate=func.current_timestamp(),
    )

    client = relationship('Clients', back_populates='bookings')


class AppSettings(Base):
    __tablename__ = 'app_settings'

    id = Column(Integer, primary_key=True)  # singleton, id = 1
    location = Column(Text, nullable=False, server_default=text("'MIAMI'"))
    default_mode = Column(Text, nullable=False, server_default=text("'VISIO'"))
    presentiel_location = Column(Text, nullable=False, server_default=text("'Vander Valk'"))
    presentiel_note = Column(Text)


class ModeOverrides(Base):
    __tablename__ = 'mode_overrides'

    date_start = Column(Date, nullable=False)
    date_end = Column(Date, nullable=False)  # inclusive
    mode = Column(Text, nullable=False)
    id = Column(Integer, primary_key=True)
    note = Column(Text)


class BookingLocks(Base):
    __tablename__ = 'booking_locks'

    id = Column(Integer, primary_key=True)
