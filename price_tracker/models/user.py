# price_tracker/models/user.py

"""Signed-in user identity."""

from dataclasses import dataclass


@dataclass(frozen=True)
class User:
    """The identity every product query and write is scoped to."""

    id: str
    email: str = ""
