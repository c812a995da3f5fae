"""
Registration of CLI command groups on the root Typer app.

Each group (``cablecast channel ...``) is its own Typer app; the router
adds it to the root app once and remembers the registration order.
"""

from __future__ import annotations

import typer


class CliRouter:
    """Registers Typer command groups on a root app."""

    def __init__(self, root_app: typer.Typer) -> None:
        self.root_app = root_app
        self._groups: dict[str, typer.Typer] = {}

    def register(
        self,
        name: str,
        command_group: typer.Typer,
        *,
        help_text: str | None = None,
    ) -> None:
        """
        Attach ``command_group`` under ``name``.

        Raises:
            ValueError: If a group with the same name is already registered
        """
        if name in self._groups:
            raise ValueError(f"Command group '{name}' is already registered")
        self.root_app.add_typer(command_group, name=name, help=help_text)
        self._groups[name] = command_group

    def list_registered_groups(self) -> list[str]:
        return list(self._groups)


_router: CliRouter | None = None


def get_router(root_app: typer.Typer) -> CliRouter:
    """Return the process-wide router, creating it for ``root_app`` on first call."""
    global _router
    if _router is None:
        _router = CliRouter(root_app)
    return _router
