#!/usr/bin/env python3
"""Configuration validation script.

Usage: validate_config.py [CONFIG_DIR]

Validates CONFIG_DIR/settings.yaml (default: the repository's config/
directory) merged over the built-in defaults.
"""

import sys
from pathlib import Path
from typing import List, Optional

# Add the project root to the Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from flightwatch.config.loader import ConfigLoader
from flightwatch.config.validation import ConfigValidator, ValidationError


def validate_settings(config_dir: Optional[Path] = None) -> List[ValidationError]:
    """Validate the merged configuration for ``config_dir``."""
    loader = ConfigLoader.create(config_dir)
    config = loader.merge_config()
    return ConfigValidator.validate_config(config)


def main():
    """Main validation function."""
    config_dir = Path(sys.argv[1]) if len(sys.argv) > 1 else None
    loader = ConfigLoader.create(config_dir)
    settings_file = loader.config_dir / "settings.yaml"

    print(f"🔍 Validating flightwatch configuration in {loader.config_dir}...")
    if not settings_file.exists():
        print(f"ℹ️  {settings_file.name} not found, validating built-in defaults")

    try:
        errors = validate_settings(loader.config_dir)
    except Exception as e:
        print(f"❌ Error loading configuration: {e}")
        sys.exit(1)

    if errors:
        print(f"❌ Found {len(errors)} validation errors:")
        for error in errors:
            print(f"  • {error.field}: {error.message} (value: {error.value})")
        sys.exit(1)

    config = loader.build()
    print("✅ Configuration is valid")
    print(f"  • lookup: {config.lookup.base_url} (timeout {config.lookup.timeout_seconds}s)")
    print(f"  • sync: max_concurrency={config.sync.max_concurrency}")
    print(f"  • products: {', '.join(config.entitlement.product_ids)}")
    sys.exit(0)


if __name__ == "__main__":
    main()
