#!/usr/bin/env python3
"""
Basic usage examples for the IAdea REST library.
"""

import logging
import os
import sys

from dotenv import load_dotenv
from iadea_rest import IadeaDevice, NotFoundError, TransportError


logging.basicConfig(
    level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)

# Load the player address and credentials from environment variables
load_dotenv()
HOST = os.getenv("IADEA_HOST")
USERNAME = os.getenv("IADEA_USER", "admin")
PASSWORD = os.getenv("IADEA_PASSWORD", "")

if not HOST:
    print("Error: IADEA_HOST must be set in the .env file")
    print("Create a .env file with the following content:")
    print("IADEA_HOST=your_player_ip")
    print("IADEA_USER=admin")
    print("IADEA_PASSWORD=your_password")
    sys.exit(1)


def example_status():
    """Show player information."""
    device = IadeaDevice(HOST, username=USERNAME, password=PASSWORD)
    if not device.check_online():
        print(f"{HOST} is offline")
        return

    print(device.get_model_info())
    print(device.get_firmware_info())
    print(device.storage_info())
    device.close()


def example_upload(local_path):
    """Upload a file and play it."""
    name = os.path.basename(local_path)

    def show_progress(event):
        print(f"\r{event.bytes_sent}/{event.total_size} ({event.fraction:.0%})", end="")

    with IadeaDevice(HOST, username=USERNAME, password=PASSWORD) as device:
        record = device.upload_file(
            local_path, f"/user-data/media/{name}", on_progress=show_progress
        )
        print(f"\nUploaded {record.download_path} ({record.id})")
        device.play_file(record)


def example_cleanup():
    """Delete every unfinished upload, one at a time."""
    with IadeaDevice(HOST, username=USERNAME, password=PASSWORD) as device:
        partial = device.get_file_list(False, "completed")
        device.delete_files(partial)
        print(f"Deleted {len(partial)} incomplete files")

        try:
            print(device.find_file_by_name("index.smil"))
        except NotFoundError as e:
            print(e)


def example_configuration():
    """Set the light bar color and enable auto start."""
    with IadeaDevice(HOST, username=USERNAME, password=PASSWORD) as device:
        device.set_color(0, 255, 0)
        device.enable_auto_start(True)
        result = device.import_configuration(
            [{"name": "app.settings.com.iadea.console.autoTimeServer", "value": "ntp://pool.ntp.org"}],
            run_commit=True,
        )
        if result.get("restartRequired"):
            try:
                device.reboot()
            except TransportError:
                # The player closes the connection when it restarts.
                print("Rebooting")


if __name__ == "__main__":
    example_status()
    if len(sys.argv) > 1:
        example_upload(sys.argv[1])
    example_cleanup()
    example_configuration()
