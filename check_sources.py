#!/usr/bin/env python3
"""Script to verify connectivity to the configured pincode sources."""

import asyncio
import sys
from pathlib import Path

# Add src to path
project_root = Path(__file__).parent
sys.path.insert(0, str(project_root / "src"))

from serviceability.config import build_source_configs, settings
from serviceability.services.resolver import RemoteResolver, check_source_health


async def run(pincode: str) -> int:
    print("=" * 60)
    print("Pincode Source Connection Test")
    print("=" * 60)
    print()

    configs = build_source_configs(settings)

    print("1. Checking source configuration...")
    for config in configs:
        missing = config.missing_credentials()
        if not config.enabled:
            print(f"   [SKIP] {config.name} is disabled")
        elif missing:
            print(f"   [WARN] {config.name} missing {', '.join(missing)}")
        else:
            print(f"   [OK] {config.name}: {config.base_url} (priority {config.priority})")
    print()

    print(f"2. Probing sources with pincode {pincode}...")
    healthy = 0
    for config in configs:
        ok = await check_source_health(config, pincode=pincode)
        print(f"   [{'OK' if ok else 'ERROR'}] {config.name}")
        healthy += int(ok)
    print()

    print("3. Resolving through the fallthrough chain...")
    trace = await RemoteResolver(sources=configs).fetch_with_trace(pincode)
    for attempt in trace.attempts:
        outcome = "OK" if attempt.ok else f"{attempt.reason.value}: {attempt.detail}"
        print(f"   {attempt.source}: {outcome}")
    if trace.record:
        record = trace.record
        print(f"   [OK] {record.city}, {record.district}, {record.state} ({record.region})")
        print(f"   [OK] {record.delivery_time}, shipping {record.shipping_cost}")
    print()

    print("=" * 60)
    if healthy:
        print(f"[SUCCESS] {healthy} of {len(configs)} sources reachable")
        print("=" * 60)
        return 0
    print("[ERROR] No pincode source is reachable")
    print("=" * 60)
    return 1


def main():
    pincode = sys.argv[1] if len(sys.argv) > 1 else settings.health_check_pincode
    return asyncio.run(run(pincode))


if __name__ == "__main__":
    sys.exit(main())
