#!/usr/bin/env python3
"""
Sign a bearer token for local testing of the Forsee AI gateway.

Reuses private.pem if present (or creates it), puts the matching public key
in .env as JWT_PUBLIC_KEY, and prints an RS256 token for the given user.
The token carries no kid, so the gateway checks it against the static key.
"""
import argparse
import datetime
import os

from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from jose import jwt

ROLES = ("admin", "engineer", "viewer")


def parse_args():
    parser = argparse.ArgumentParser(description="Sign a dev token for the Forsee AI gateway")
    parser.add_argument("user_id", nargs="?", default="dev-user", help="User id to put in the token (default: dev-user)")
    parser.add_argument("--email", default="dev@forsee.local", help="Email claim")
    parser.add_argument("--name", default="Dev User", help="Display name claim")
    parser.add_argument("--role", choices=ROLES, help="Optional role claim")
    parser.add_argument("--hours", type=int, default=1, help="Token lifetime in hours (default: 1)")
    parser.add_argument("--key", default="private.pem", help="Signing key file, created if missing")
    parser.add_argument("--env-file", default=".env", help="Env file to update with JWT_PUBLIC_KEY")
    parser.add_argument("--new-key", action="store_true", help="Replace the signing key even if it exists")
    return parser.parse_args()


def main():
    args = parse_args()

    if args.new_key or not os.path.exists(args.key):
        print(f"Writing new signing key to {args.key}")
        private_key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
        private_pem = private_key.private_bytes(
            serialization.Encoding.PEM, serialization.PrivateFormat.PKCS8, serialization.NoEncryption()
        )
        with open(args.key, "wb") as f:
            f.write(private_pem)
    else:
        with open(args.key, "rb") as f:
            private_pem = f.read()
        private_key = serialization.load_pem_private_key(private_pem, password=None)

    public_pem = private_key.public_key().public_bytes(
        serialization.Encoding.PEM, serialization.PublicFormat.SubjectPublicKeyInfo
    ).decode()

    # .env values are single-line, so newlines are escaped; config unescapes them
    lines = []
    if os.path.exists(args.env_file):
        with open(args.env_file, "r") as f:
            lines = [line for line in f.read().splitlines() if line and not line.startswith("JWT_PUBLIC_KEY=")]
    lines += ["JWT_PUBLIC_KEY=\"{}\"".format(public_pem.replace("\n", "\\n"))]
    with open(args.env_file, "w") as f:
        f.write("\n".join(lines) + "\n")
    print(f"Set JWT_PUBLIC_KEY in {args.env_file}; restart the gateway to pick it up")

    claims = {
        "sub": args.user_id,
        "user_id": args.user_id,
        "email": args.email,
        "name": args.name,
        "exp": datetime.datetime.now(datetime.timezone.utc) + datetime.timedelta(hours=args.hours)
    }
    if args.role:
        claims["role"] = args.role
    token = jwt.encode(claims, private_pem.decode(), algorithm="RS256")

    print(f"\nToken for user_id={args.user_id}:")
    print(token)
    print("\nLeave FIREBASE_PROJECT_ID unset so the audience check is skipped, then:")
    print(f"  export FORSEE_TOKEN={token}")


if __name__ == "__main__":
    main()
