"""
Programmatic Alembic migration runner.

Allows running migrations without an alembic.ini by configuring the script location
to this package's migrations directory.

Usage examples:
    python -m order_api.db.run_migrations upgrade head
    python -m order_api.db.run_migrations downgrade -1
    python -m order_api.db.run_migrations history
"""

import logging
import sys
from pathlib import Path
from typing import List, Optional

from alembic import command
from alembic.config import Config
from sqlalchemy.engine import Connection

logger = logging.getLogger(__name__)


# PUBLIC_INTERFACE
def build_config(connection: Optional[Connection] = None) -> Config:
    """
    Build an Alembic Config pointing at the bundled migrations.

    When a (sync) connection is given, env.py runs the migrations on it instead
    of opening its own engine; this is how the unit of work migrates inside its
    own session.
    """
    cfg = Config()
    # Script location is the migrations folder next to this file.
    here = Path(__file__).resolve()
    cfg.set_main_option("script_location", str(here.parent / "migrations"))

    from order_api.db.config import get_settings

    cfg.set_main_option("sqlalchemy.url", get_settings().sync_database_url)
    if connection is not None:
        cfg.attributes["connection"] = connection
    return cfg


# PUBLIC_INTERFACE
def upgrade_on_connection(connection: Connection, revision: str = "head") -> None:
    """Upgrade the schema using an already open sync connection (use via AsyncConnection.run_sync)."""
    command.upgrade(build_config(connection), revision)


# PUBLIC_INTERFACE
def main(argv: List[str] | None = None) -> None:
    """Run Alembic command with programmatic configuration."""
    args = list(sys.argv[1:] if argv is None else argv)
    cfg = build_config()

    if not args:
        print("No Alembic arguments provided. Example: upgrade head")
        sys.exit(1)

    # Dispatch to Alembic CLI command
    cmd = args[0]
    other = args[1:]
    logger.info("Running alembic %s %s", cmd, " ".join(other))

    if cmd == "upgrade":
        command.upgrade(cfg, *(other or ["head"]))
    elif cmd == "downgrade":
        command.downgrade(cfg, *(other or ["-1"]))
    elif cmd == "history":
        command.history(cfg, *other)
    elif cmd == "current":
        command.current(cfg, *other)
    elif cmd == "revision":
        command.revision(cfg, *other)
    elif cmd == "heads":
        command.heads(cfg, *other)
    elif cmd == "show":
        if not other:
            print("Usage: show <revision>")
            sys.exit(2)
        command.show(cfg, other[0])
    else:
        print(f"Unsupported Alembic command: {cmd}")
        sys.exit(2)


if __name__ == "__main__":
    main()
