"""
hocr.py

hOCR document wrapper.

Backends return the markup of a single page; this module wraps it in the
XHTML document Tesseract itself emits, with the backend version recorded in
the ``ocr-system`` meta tag.
"""

HOCR_CAPABILITIES = "ocr_page ocr_carea ocr_par ocr_line ocrx_word ocrp_wconf"

HOCR_HEADER = """<?xml version="1.0" encoding="UTF-8"?>
<!DOCTYPE html PUBLIC "-//W3C//DTD XHTML 1.0 Transitional//EN"
    "http://www.w3.org/TR/xhtml1/DTD/xhtml1-transitional.dtd">
<html xmlns="http://www.w3.org/1999/xhtml" xml:lang="en" lang="en">
 <head>
  <title></title>
  <meta http-equiv="Content-Type" content="text/html;charset=utf-8"/>
  <meta name='ocr-system' content='tesseract {version}' />
  <meta name='ocr-capabilities' content='{capabilities}'/>
 </head>
 <body>
"""

HOCR_FOOTER = """ </body>
</html>
"""


def wrap_hocr(body: str, version: str) -> str:
    """Return a complete hOCR document containing ``body`` verbatim."""
    header = HOCR_HEADER.format(version=version, capabilities=HOCR_CAPABILITIES)
    return header + body + HOCR_FOOTER
