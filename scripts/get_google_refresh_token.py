#!/usr/bin/env python3
"""Obtain a Google OAuth refresh token for calendar invites.

Reads GOOGLE_CLIENT_ID and GOOGLE_CLIENT_SECRET from .env, prints the consent URL,
then exchanges the authorization code you paste back for tokens and prints the
refresh token to put in GOOGLE_REFRESH_TOKEN.

Usage: from project root, run:
  python scripts/get_google_refresh_token.py
  python scripts/get_google_refresh_token.py --redirect-uri http://localhost:3001/oauth2callback
"""
import argparse
import os
import sys
from urllib.parse import urlencode

# Project root
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

GOOGLE_AUTH_URL = "https://accounts.google.com/o/oauth2/v2/auth"


def main():
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("--redirect-uri", default="http://localhost:3001/oauth2callback")
    args = parser.parse_args()

    import httpx
    from slotbook.config import get_settings
    from slotbook.services.calendar import CALENDAR_EVENTS_SCOPE, GOOGLE_TOKEN_URL

    s = get_settings()
    if not s.google_client_id or not s.google_client_secret:
        print("Set GOOGLE_CLIENT_ID and GOOGLE_CLIENT_SECRET in .env first.")
        return 1
    print("Client ID:", s.google_client_id)
    print("Redirect URI:", args.redirect_uri)

    query = urlencode({
        "client_id": s.google_client_id,
        "redirect_uri": args.redirect_uri,
        "response_type": "code",
        "scope": CALENDAR_EVENTS_SCOPE,
        "access_type": "offline",
        "prompt": "consent",
    })
    print("\nOpen this URL, approve access, then copy the `code` parameter from the redirect:")
    print(f"  {GOOGLE_AUTH_URL}?{query}\n")
    code = input("Authorization code: ").strip()
    if not code:
        print("No code entered.")
        return 1

    r = httpx.post(
        GOOGLE_TOKEN_URL,
        data={
            "code": code,
            "client_id": s.google_client_id,
            "client_secret": s.google_client_secret,
            "redirect_uri": args.redirect_uri,
            "grant_type": "authorization_code",
        },
        timeout=10.0,
    )
    if r.status_code != 200:
        print(f"Token exchange failed: status={r.status_code} body={r.text}")
        return 1
    refresh_token = r.json().get("refresh_token")
    if not refresh_token:
        print("No refresh token returned. Revoke the app's access in your Google account and try again.")
        return 1
    print("Refresh Token:", refresh_token)
    return 0


if __name__ == "__main__":
    sys.exit(main())
