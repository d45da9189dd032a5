"""Identifier and PIN generation."""

import secrets
import uuid
from typing import Protocol


class IdGenerator(Protocol):
    """Produces opaque unique ids for bookings and series."""

    def new_id(self) -> str:
        ...


class UuidGenerator:
    """Random UUID4 ids."""

    def new_id(self) -> str:
        return str(uuid.uuid4())


def generate_pin_code() -> str:
    """Return a 4-digit door PIN (1000-9999).

    Cosmetic only; not an access-control boundary.
    """
    return str(1000 + secrets.randbelow(9000))
