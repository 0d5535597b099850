"""
config.py

Configuration module for pageocr.

Purpose:
--------
Contains the constants shared across the package: the fixed recognition
language, Tesseract invocation settings, input-file limits and logging.

Design Principle:
-----------------
Configuration is isolated from orchestration logic. Values that make sense
per deployment can be overridden through the environment (or a .env file).
"""

import os

from dotenv import load_dotenv

load_dotenv()

# -----------------------------
# Engine
# -----------------------------
OCR_LANGUAGE = "eng"  # Language identifier the model is registered under
DEFAULT_PAGE_SEG_MODE = os.getenv("PAGEOCR_PSM", "SINGLE_BLOCK")
MODEL_PATH = os.getenv("PAGEOCR_MODEL_PATH", "")

# -----------------------------
# Tesseract
# -----------------------------
TESSERACT_CMD = os.getenv("TESSERACT_CMD", "tesseract")
TESSERACT_TIMEOUT_S = float(os.getenv("PAGEOCR_TESSERACT_TIMEOUT", "0"))  # 0 = no timeout

# -----------------------------
# Image buffers
# -----------------------------
IMAGE_BYTES_PER_PIXEL = 4  # RGBA

# -----------------------------
# Security
# -----------------------------
MAX_FILE_SIZE_MB = 50
MAX_MODEL_SIZE_MB = 200
ALLOWED_EXTENSIONS = [".png", ".jpg", ".jpeg", ".tiff", ".tif", ".bmp", ".gif", ".webp"]

# -----------------------------
# Logging
# -----------------------------
LOG_LEVEL = os.getenv("PAGEOCR_LOG_LEVEL", "INFO")
