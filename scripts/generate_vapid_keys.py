"""
VAPID anahtar çifti üretir (tek seferlik kurulum).

    python scripts/generate_vapid_keys.py
    python scripts/generate_vapid_keys.py --pem
"""
import argparse
import sys
from pathlib import Path

# Proje kökünü sys.path'e ekle (app.* importları için)
BASE_DIR = Path(__file__).resolve().parents[1]
if str(BASE_DIR) not in sys.path:
    sys.path.append(str(BASE_DIR))

from app.services.vapid import generate_vapid_keys  # noqa: E402


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="VAPID anahtar çifti üret")
    parser.add_argument("--pem", action="store_true", help="Private key'i PEM olarak da yazdır")
    parser.add_argument("--subject", default="mailto:info@gymdagboken.se", help="VAPID_SUBJECT değeri")
    args = parser.parse_args(argv)

    keys = generate_vapid_keys()
    print("# .env dosyanıza ekleyin (private key gizli tutulmalı)")
    print(f"VAPID_PUBLIC_KEY={keys['public_key']}")
    print(f"VAPID_PRIVATE_KEY={keys['private_key']}")
    print(f"VAPID_SUBJECT={args.subject}")
    if args.pem:
        print()
        print(keys["private_key_pem"])
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
