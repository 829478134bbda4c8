from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class ContactInfo:
    name: str = "Guest"
    email: str = ""
    phone: str = ""
