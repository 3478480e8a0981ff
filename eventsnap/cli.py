"""
Command line uploader.

    eventsnap upload K7Q2ZD party/*.jpg --guest-name Sam
    eventsnap create-event --owner user_123 --title "Sam's 40th"

The API base URL comes from --url, else EVENTSNAP_URL, else APP_URL.
"""

import argparse
import os
import sys

from dotenv import load_dotenv

from eventsnap.services.upload_client import EventSnapClient, EventSnapAPIError, LocalPhoto, UploadProgress


def _print_progress(file_id, entry, progress):
    line = f"[{progress.completed}/{progress.total}] {entry.filename}: {entry.status.value}"
    if entry.error:
        line += f" ({entry.error})"
    print(line)


def upload(client, args):
    files = [LocalPhoto.from_path(path) for path in args.files]
    outcome = client.upload_photos(
        args.code,
        files,
        guest_name=args.guest_name,
        progress=UploadProgress(listener=_print_progress),
    )

    for rejected in outcome.rejected:
        print(f"Skipped {rejected}")
    print(outcome.message)
    return 0 if outcome.success else 1


def create_event(client, args):
    try:
        event = client.create_event(
            owner_id=args.owner,
            title=args.title,
            description=args.description,
            date=args.date,
            location=args.location,
            code=args.code,
        )
    except EventSnapAPIError as e:
        print(f"Error: {e.message}")
        return 1

    print(f"Event code: {event['code']}")
    print(f"Share link: {event['uploadUrl']}")
    return 0


def build_parser():
    parser = argparse.ArgumentParser(prog='eventsnap', description='EventSnap API client')
    parser.add_argument('--url', help='API base URL')
    sub = parser.add_subparsers(dest='command', required=True)

    p_upload = sub.add_parser('upload', help='Upload photos to an event')
    p_upload.add_argument('code', help='Event code')
    p_upload.add_argument('files', nargs='+', help='Image files')
    p_upload.add_argument('--guest-name', default=None)
    p_upload.set_defaults(func=upload)

    p_create = sub.add_parser('create-event', help='Create an event')
    p_create.add_argument('--owner', required=True, help='Owner user id')
    p_create.add_argument('--title', required=True)
    p_create.add_argument('--description')
    p_create.add_argument('--date', help='ISO-8601 date')
    p_create.add_argument('--location')
    p_create.add_argument('--code', help='Public code (random if omitted)')
    p_create.set_defaults(func=create_event)

    return parser


def main(argv=None, client=None):
    load_dotenv()
    args = build_parser().parse_args(argv)
    base_url = args.url or os.environ.get('EVENTSNAP_URL') or os.environ.get('APP_URL', 'http://localhost:5000')
    client = client or EventSnapClient(base_url)
    return args.func(client, args)


if __name__ == '__main__':
    sys.exit(main())
