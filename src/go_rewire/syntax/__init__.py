"""
Go syntax model and parser adapter.
"""

from go_rewire.syntax.parser import GoParser, parse_file, parse_source

__all__ = ["GoParser", "parse_file", "parse_source"]
