"""One-time script: create the table, topic and queues, then print the env settings."""

from peanut_gallery.deploy.provision import ensure_resources
from peanut_gallery.log import setup_logging


def main():
    setup_logging()
    print("Provisioning AWS resources...")
    env = ensure_resources()
    print("\nAdd these to your .env:")
    for name, value in env.items():
        print(f"{name}={value}")


if __name__ == "__main__":
    main()
