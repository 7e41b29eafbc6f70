"""PySide6 entrypoint: launches the Image Stacker window from image_stacker.main."""

import sys

try:
    from image_stacker.main import main
except Exception as exc:
    # Provide a clear error if imports fail due to PYTHONPATH issues
    raise RuntimeError("Failed to import image_stacker. Ensure project root is on PYTHONPATH.") from exc


if __name__ == "__main__":
    sys.exit(main())
