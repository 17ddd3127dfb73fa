# safestock/models/base.py
from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """
    Base class for all ORM models.

    Both the client mirror and the reference hub store their documents
    in tables declared on this base.
    """

    pass
