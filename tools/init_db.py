import argparse
import logging
import sys
from pathlib import Path

# Ensure repo root is importable
sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from asset_vault.core.errors import AssetVaultError
from asset_vault.core.settings import load_settings
from asset_vault.db.runtime import bootstrap

logging.basicConfig(level=logging.INFO, format="%(asctime)s [%(levelname)s] %(name)s: %(message)s")
logger = logging.getLogger(__name__)


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Create the database/schema and sync tables.")
    parser.add_argument("-c", "--config", help="YAML config file (overrides environment)")
    args = parser.parse_args(argv)

    try:
        settings = load_settings(args.config)
        db = bootstrap(settings)
    except AssetVaultError:
        logger.exception("Database initialisation failed")
        return 1

    with db:
        tables = ", ".join(db.metadata.tables) or "-"
        logger.info("Database ready: %s (tables: %s)", db.descriptor.redacted_url, tables)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
