from .builtins import BUILTIN_COMMANDS, is_builtin, make_builtin_command
from .fstrings import InterpolateFStringCommand, Placeholder, split_template
from .inputs import ScriptedInputProvider, StdinInputProvider
from .methods import METHOD_COMMANDS, make_method_command

__all__ = [
    "BUILTIN_COMMANDS",
    "InterpolateFStringCommand",
    "METHOD_COMMANDS",
    "Placeholder",
    "ScriptedInputProvider",
    "StdinInputProvider",
    "is_builtin",
    "make_builtin_command",
    "make_method_command",
    "split_template",
]
