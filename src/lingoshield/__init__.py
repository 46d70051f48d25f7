"""
LingoShield - content translation pipeline

Extracts translatable text from HTML, JSON, plain text and SRT/VTT
subtitles, protects Do-Not-Translate terms, placeholders and glossary
terms across an external translation call, reuses translation memory
matches, and rebuilds every document around the translated text.
"""

__version__ = "0.1.0"
