# Scripts for sso-auth-py
from .hash_password import main as hash_password_main

__all__ = ["hash_password_main"]
