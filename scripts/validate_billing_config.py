#!/usr/bin/env python3
"""
Billing config validation script for the Billing Layer.
This script validates billing-as-code files (JSON or YAML) for correctness.
"""

import argparse
import sys
from pathlib import Path
from typing import List, Optional

from shared.errors import BillingLayerException, ValidationError
from service_entitlements.app.engine.billing_config import load_billing_config
from service_entitlements.app.engine.validator import collect_config_errors


def validate_file(path: Path) -> List[str]:
    """Validate a single billing config file."""
    try:
        config = load_billing_config(path)
    except ValidationError as e:
        return [f"{err['loc']}: {err['msg']}" for err in e.details.get("errors", [])]
    except BillingLayerException as e:
        return [e.message]

    return collect_config_errors(config)


def main(argv: Optional[List[str]] = None) -> int:
    """Main function to validate billing config files."""
    parser = argparse.ArgumentParser(description="Validate billing config files")
    parser.add_argument("paths", nargs="+", type=Path, help="Billing config files (.json, .yaml, .yml)")
    args = parser.parse_args(argv)

    print("Validating billing configs...")

    total_errors = 0

    for path in args.paths:
        errors = validate_file(path)

        if errors:
            print(f"❌ {path}: {len(errors)} validation errors")
            for error in errors:
                print(f"   - {error}")
            total_errors += len(errors)
        else:
            print(f"✅ {path}: billing config is valid")

    print(f"\nValidation complete: {total_errors} total errors")

    if total_errors == 0:
        print("All billing configs are valid!")
        return 0
    else:
        print("Some billing configs have validation errors")
        return 1


if __name__ == "__main__":
    sys.exit(main())
