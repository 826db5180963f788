"""
One-time Gmail authorization for the worker's sender account.

Opens the OAuth consent screen, stores the credentials in token.pickle and
prints the base64 value to put in the GMAIL_TOKEN secret for deployments.

Usage:
    python scripts/authorize_gmail.py --client-secrets credentials.json
"""

import argparse
import base64
import os
import pickle
import sys

from google.auth.transport.requests import Request
from google_auth_oauthlib.flow import InstalledAppFlow

# Add project root to path
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from src.notifications.gmail_utils import TOKEN_FILE
from src.shared.logger import get_logger

logger = get_logger(__name__)

# If modifying these scopes, delete the file token.pickle.
SCOPES = ["https://www.googleapis.com/auth/gmail.send"]


def authorize(client_secrets: str, token_file: str = TOKEN_FILE):
    creds = None
    if os.path.exists(token_file):
        with open(token_file, "rb") as token:
            creds = pickle.load(token)

    # If there are no (valid) credentials available, let the user log in.
    if not creds or not creds.valid:
        if creds and creds.expired and creds.refresh_token:
            creds.refresh(Request())
        else:
            if not os.path.exists(client_secrets):
                logger.error(f"Error: {client_secrets} not found.")
                return None

            flow = InstalledAppFlow.from_client_secrets_file(client_secrets, SCOPES)
            creds = flow.run_local_server(port=0)

        # Save the credentials for the next run
        with open(token_file, "wb") as token:
            pickle.dump(creds, token)

    return creds


def main():
    parser = argparse.ArgumentParser(description="Authorize the worker to send email through Gmail")
    parser.add_argument("--client-secrets", default="credentials.json", help="OAuth client secrets file")
    parser.add_argument("--token-file", default=TOKEN_FILE)
    args = parser.parse_args()

    creds = authorize(args.client_secrets, args.token_file)
    if not creds:
        sys.exit(1)

    logger.info(f"✅ Credentials saved to {args.token_file}")
    with open(args.token_file, "rb") as token:
        print("GMAIL_TOKEN=" + base64.b64encode(token.read()).decode())


if __name__ == "__main__":
    main()
