from backtestlab.api.app import create_app

__all__ = ["create_app"]
