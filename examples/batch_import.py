"""
Example of uploading a folder of photos to an album

Requires JOURNEY_API_URL, JOURNEY_API_KEY and JOURNEY_ACCESS_TOKEN (a signed-in
user's access token), e.g. in a .env file.
"""

import asyncio
import os
import sys
from pathlib import Path

from journey_core import PhotoStatus, RestBackend, configure_logging, get_settings, upload_files


async def run(album_id: str, images):
    backend = RestBackend.from_settings(get_settings(), access_token=os.getenv("JOURNEY_ACCESS_TOKEN"))

    # Progress callback
    def on_item(item):
        if item.status is PhotoStatus.COMPLETED:
            print(f"[{item.intake_index + 1}/{len(images)}] ✓ {item.filename}")
        elif item.status is PhotoStatus.DUPLICATE:
            print(f"[{item.intake_index + 1}/{len(images)}] = {item.filename} (already in album)")
        else:
            print(f"[{item.intake_index + 1}/{len(images)}] ✗ {item.filename}: {item.error_detail}")

    try:
        return await upload_files(backend.session(), album_id, images, progress_callback=on_item)
    finally:
        await backend.aclose()


def main():
    if len(sys.argv) < 2:
        print("Usage: python batch_import.py <album-id> [photo-dir]")
        return

    album_id = sys.argv[1]
    photo_dir = Path(sys.argv[2] if len(sys.argv) > 2 else "./photos")

    if not photo_dir.exists():
        print(f"Error: Directory {photo_dir} not found")
        print("Please create a 'photos' directory with some images")
        return

    # Find all JPEG files
    images = sorted(list(photo_dir.glob("*.jpg")) + list(photo_dir.glob("*.jpeg")))

    if not images:
        print(f"No JPEG images found in {photo_dir}")
        return

    configure_logging("WARNING")
    print(f"Found {len(images)} images")
    print("=" * 60)

    report = asyncio.run(run(album_id, images))

    # Summary
    print("=" * 60)
    print(f"\nResults:")
    print(f"  Uploaded:   {report.succeeded}")
    print(f"  Failed:     {report.failed}")
    print(f"  Duplicates: {report.duplicates}")
    print(f"\n{report.message}")


if __name__ == "__main__":
    main()
