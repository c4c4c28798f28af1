# discharge_tracker/models/base.py
from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """
    Base class for all ORM models.

    Tickets, department policies, step records and the bed dashboard
    all live in the same schema and share this metadata.
    """

    pass
