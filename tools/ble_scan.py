#!/usr/bin/env python3
"""Simple Bleak scan helper: prints address, name, and rssi, marking the rangefinder."""
import argparse
import asyncio

from bleak import BleakScanner


async def scan(device_name: str, timeout: float) -> None:
    print(f'Starting BLE scan for {timeout:g}s...')
    found = await BleakScanner.discover(timeout=timeout, return_adv=True)
    print(f'Found {len(found)} devices')
    for device, adv in found.values():
        marker = '*' if (adv.local_name or device.name) == device_name else ' '
        print(f"{marker} {device.address}  | {repr(adv.local_name or device.name)} | rssi={adv.rssi}")


if __name__ == '__main__':
    parser = argparse.ArgumentParser(description='List nearby BLE peripherals')
    parser.add_argument('--name', default='Rangefinder', help='Rangefinder name to highlight')
    parser.add_argument('--timeout', type=float, default=10.0)
    args = parser.parse_args()
    asyncio.run(scan(args.name, args.timeout))
