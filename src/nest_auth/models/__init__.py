"""Database models."""
from nest_auth.models.user import User, UserRole
from nest_auth.models.user_details import UserDetails
from nest_auth.models.api_key import ApiKey

__all__ = ["User", "UserRole", "UserDetails", "ApiKey"]
