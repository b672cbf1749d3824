"""
Script to run a conversion (or health check) against a running converter API.

Usage:
    python convert_via_api.py --input 3/2km
    python convert_via_api.py --input kg --json
    python convert_via_api.py --health
"""

import argparse
import json
import os
import sys

import requests
from dotenv import load_dotenv

load_dotenv()

API_BASE_URL = os.getenv("API_BASE_URL", "http://localhost:8000")

def check_health(base_url):
    """Call /api/health and report the result"""
    try:
        response = requests.get(f"{base_url}/api/health", timeout=5)
        response.raise_for_status()
        result = response.json()
        print(f"✓ {result.get('service')} v{result.get('version')} is up ({result.get('time')})")
        return True
    except requests.exceptions.ConnectionError:
        print(f"✗ Could not connect to {base_url}")
        return False
    except requests.exceptions.HTTPError as e:
        print(f"✗ Error: {e}")
        return False

def convert(base_url, raw_input, as_json=False):
    """Call /api/convert; returns True when the input converted"""
    try:
        response = requests.get(f"{base_url}/api/convert", params={"input": raw_input}, timeout=5)
        response.raise_for_status()
    except requests.exceptions.ConnectionError:
        print(f"✗ Could not connect to {base_url}")
        return False
    except requests.exceptions.HTTPError as e:
        print(f"✗ Error: {e}")
        print(f"  Response: {e.response.text}")
        return False

    # Invalid input comes back as plain text
    if not response.headers.get("content-type", "").startswith("application/json"):
        print(f"✗ {response.text}")
        return False

    result = response.json()
    if as_json:
        print(json.dumps(result, indent=2))
    else:
        print(result["string"])
    return True

def main():
    parser = argparse.ArgumentParser(description="Convert between metric and imperial units via the API")
    parser.add_argument("--input", help="Number and unit, e.g. 3/2km, 4gal, kg")
    parser.add_argument("--health", action="store_true", help="Check /api/health instead of converting")
    parser.add_argument("--json", action="store_true", help="Print the full JSON response")
    parser.add_argument("--base-url", default=API_BASE_URL, help="API base URL (or set API_BASE_URL env var)")

    args = parser.parse_args()

    if args.health:
        ok = check_health(args.base_url)
    elif args.input is not None:
        ok = convert(args.base_url, args.input, as_json=args.json)
    else:
        parser.print_help()
        return 2

    return 0 if ok else 1

if __name__ == "__main__":
    sys.exit(main())
