"""
CLI command handlers, one module per subcommand family.
"""

from .instrument import handle_instrument
from .toolchain import handle_toolchain
from .unused import handle_unused
