"""
bfc80 Command-Line Interface
============================

This package provides the command-line tools:

- **bfc**: Brainfuck to CP/M .COM compiler
- **bfcrun**: runs .COM files under the emulated CP/M console

Each tool is implemented as a Click-based CLI application.
"""

__all__ = ["bfc", "bfcrun"]
