#!/usr/bin/env python3
"""Helper script to check and create the .env file for the pincode sources."""

from pathlib import Path
import os
import sys

ENV_TEMPLATE = """# data.gov.in pincode directory (optional; the source stays disabled without both values)
# Get a key from: https://data.gov.in → My Account → API keys
FMS_DATAGOV_API_KEY=
FMS_DATAGOV_RESOURCE_ID=

# API Configuration
FMS_API_PREFIX=/api
# FMS_FRONTEND_ALLOWED_ORIGINS - Leave commented to use defaults
# JSON array format: ["http://localhost:3000","http://127.0.0.1:3000"]
# Or comma-separated: http://localhost:3000,http://127.0.0.1:3000

# Resolver tuning
FMS_CACHE_TTL_SECONDS=86400
FMS_DATAGOV_RATE_LIMIT_PER_MINUTE=100
FMS_POSTALPINCODE_RATE_LIMIT_PER_MINUTE=1000

# Pincodes or states that are never serviceable (comma-separated)
# FMS_UNSERVICEABLE_PINCODES=799001,737001
# FMS_UNSERVICEABLE_STATES=

# Delivery charge
FMS_DEFAULT_PER_KG_RATE=90
"""


def _mask(value: str) -> str:
    if len(value) > 12:
        return value[:6] + "..." + value[-4:]
    return value


def main():
    project_root = Path(__file__).parent
    env_file = project_root / ".env"

    print("=" * 60)
    print("Pincode Source Environment Checker")
    print("=" * 60)
    print()

    if env_file.exists():
        print(f"✅ Found .env file at: {env_file}")
        print()
        print("Current contents:")
        print("-" * 60)
        with open(env_file, "r", encoding="utf-8") as f:
            for line in f.read().split("\n"):
                # Mask the key for security
                if line.startswith("FMS_DATAGOV_API_KEY=") and "=" in line:
                    name, value = line.split("=", 1)
                    print(f"{name}={_mask(value.strip())}")
                else:
                    print(line)
        print("-" * 60)
        print()
    else:
        print(f"❌ .env file NOT found at: {env_file}")
        print()
        print("Creating template .env file...")
        with open(env_file, "w", encoding="utf-8") as f:
            f.write(ENV_TEMPLATE)
        print(f"✅ Created .env file at: {env_file}")
        print()
        print("⚠️  Add FMS_DATAGOV_API_KEY and FMS_DATAGOV_RESOURCE_ID to enable data.gov.in.")
        print("   postalpincode.in works without credentials.")
        print()
        return

    print("Testing config loading...")
    print()

    try:
        sys.path.insert(0, str(project_root / "src"))
        from serviceability.config import build_source_configs, settings

        for config in build_source_configs(settings):
            missing = config.missing_credentials()
            if not config.enabled:
                print(f"⚪ {config.name}: disabled")
            elif missing:
                print(f"❌ {config.name}: missing {', '.join(missing)}")
            else:
                print(f"✅ {config.name}: configured (priority {config.priority}, {config.rate_limit_per_minute}/min)")

        env_key = os.getenv("FMS_DATAGOV_API_KEY")
        if env_key:
            print(f"ℹ️  FMS_DATAGOV_API_KEY also set in the process environment: {_mask(env_key)}")
        print()
        print("Troubleshooting:")
        print("1. Make sure .env file exists in project root")
        print("2. Make sure variables start with FMS_ prefix")
        print("3. Make sure there are no spaces around = sign")
        print("4. Restart backend after editing .env")
        print()
    except Exception as e:
        print(f"❌ Error loading config: {e}")
        print()
        print("Make sure you're running this from the project root directory")


if __name__ == "__main__":
    main()
