# config.py
"""
Application configuration constants for Image Stacker
"""

# Working set limits
MAX_ENTRIES = 10

# Output width bounds (validated when a merge is triggered)
MIN_OUTPUT_WIDTH = 100
MAX_OUTPUT_WIDTH = 2000
DEFAULT_OUTPUT_WIDTH = 780

# Output encoding
DEFAULT_OUTPUT_FORMAT = "jpeg"
JPEG_QUALITY = 0.92  # Fraction in [0, 1], mapped to Pillow's 1-100 scale
PNG_COMPRESS_LEVEL = 6
OUTPUT_BASENAME = "merged-image"

# Largest canvas side we are willing to allocate
MAX_CANVAS_DIMENSION = 32767

# Background painted under every composite
BACKGROUND_COLOR = (255, 255, 255)

# Preview thumbnails
PREVIEW_SIZE = (96, 96)
PREVIEW_CACHE_SIZE = 50
PREVIEW_CACHE_CLEANUP_THRESHOLD = 1.0  # Previews are released explicitly, never evicted early

# File picker filter
SUPPORTED_IMAGE_FORMATS = ['png', 'jpg', 'jpeg', 'bmp', 'webp', 'gif', 'tif', 'tiff', 'ico']

# Logging
LOGGER_NAME = "image_stacker"
LOG_FILENAME = "image_stacker.log"
LOG_MAX_BYTES = 1_048_576
LOG_BACKUP_COUNT = 5
LOG_LEVEL_ENV = "IMAGE_STACKER_LOG_LEVEL"
