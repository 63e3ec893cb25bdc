# ruff: noqa: TC003
from __future__ import annotations

import uuid
from typing import Literal

from pydantic import BaseModel


class AuthContext(BaseModel):
    """Dev auth context for record clerks: admins edit records, users only read them."""

    user_id: uuid.UUID
    role: Literal["admin", "user"] = "user"
