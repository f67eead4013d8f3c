"""
GameCollectors Backend: Account Schemas
=======================================

What:  Body of POST /api/register. Login bodies are forwarded as-is and
       have no model here.
"""

from pydantic import Field

from gamecollectors.schemas.common import CamelModel


class RegisterIn(CamelModel):
    email: str = Field(min_length=4, max_length=100, description="Login identity")
    # Length rules are checked by UserService so the error names the range
    password: str = Field(description="Between 10 and 1000 characters")
