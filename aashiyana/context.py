"""
Process-wide application context.

Built once at startup and stored on ``app.state.context``; request
dependencies read their collaborators from here instead of module globals.
"""

from typing import Optional
from aashiyana.config import Settings
from aashiyana.database import Database
from aashiyana.identity import TokenVerifier, build_token_verifier
from aashiyana.services.search import PropertySearchBackend, SubstringPropertySearch
from aashiyana.storage import StorageBackend, build_storage_backend


class AppContext:
    """Collaborators shared by every request in this process."""

    def __init__(
        self,
        settings: Settings,
        database: Database,
        token_verifier: TokenVerifier,
        storage: StorageBackend,
        search: Optional[PropertySearchBackend] = None,
    ):
        self.settings = settings
        self.database = database
        self.token_verifier = token_verifier
        self.storage = storage
        self.search = search or SubstringPropertySearch()

    async def close(self):
        await self.database.dispose()


def build_context(settings: Settings) -> AppContext:
    """Wire the context from settings."""
    return AppContext(
        settings=settings,
        database=Database(settings.database_url, echo=settings.database_echo),
        token_verifier=build_token_verifier(settings),
        storage=build_storage_backend(settings),
    )
