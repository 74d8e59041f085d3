"""
Auth Module

Bearer authentication and the credential store implementations.
"""
from .authenticator import Authenticator, parse_bearer
from .credential_store import (
    CredentialStore,
    StaticCredentialStore,
    SqlCredentialStore,
    JwtCredentialStore,
)
from .tokens import (
    generate_api_key,
    hash_api_key,
    api_key_prefix,
    create_access_token,
    decode_token,
)

__all__ = [
    "Authenticator",
    "parse_bearer",
    "CredentialStore",
    "StaticCredentialStore",
    "SqlCredentialStore",
    "JwtCredentialStore",
    "generate_api_key",
    "hash_api_key",
    "api_key_prefix",
    "create_access_token",
    "decode_token",
]
