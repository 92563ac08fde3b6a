"""
Rulebook CLI package.

Commands are discovered from the domain subfolders (rules/, sync/):
- _output: Output formatting (JSON/text modes)
- _args: Common argument registration helpers
- _utils: Manager construction shared by commands
"""
from ._args import add_json_flag, add_platform_arg, add_root_flag, add_rule_id_arg, add_standard_flags
from ._output import OutputFormatter
from ._utils import get_root, load_manager

__all__ = [
    "OutputFormatter",
    "add_json_flag",
    "add_platform_arg",
    "add_root_flag",
    "add_rule_id_arg",
    "add_standard_flags",
    "get_root",
    "load_manager",
]
