"""
Simple example of using journey-core to inspect a photo before upload
"""

from pathlib import Path
from journey_core import inspect_photo


def main():
    # Replace with actual image path
    image_path = Path("example.jpg")

    if not image_path.exists():
        print(f"Error: {image_path} not found")
        print("Please provide a valid image path")
        return

    print(f"Inspecting {image_path}...")
    print("-" * 60)

    fingerprint, metadata = inspect_photo(image_path)

    print(f"Fingerprint:    {fingerprint}")

    if metadata.is_empty:
        print("No capture metadata found")
        return

    if metadata.taken_at:
        print(f"Taken at:       {metadata.taken_at}")

    camera = " ".join(part for part in (metadata.camera_make, metadata.camera_model) if part)
    if camera:
        print(f"Camera:         {camera}")

    # GPS
    if metadata.has_location:
        print(f"GPS:            {metadata.latitude}, {metadata.longitude}")


if __name__ == "__main__":
    main()
