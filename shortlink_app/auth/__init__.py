from .token_store import TokenStore, check_credentials

__all__ = ["TokenStore", "check_credentials"]
