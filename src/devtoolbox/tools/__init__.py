"""Interactive tools and the Tool abstraction they share."""

from .base import FormState, Tool, ToolMetadata, export_json
from .jwt_decoder import JwtDecoder, decode_jwt
from .org_research import OrgResearch
from .repo_explorer import RepoExplorer
from .unicode_inspector import UnicodeInspector, graphemes

__all__ = [
    "Tool", "ToolMetadata", "FormState", "export_json",
    "OrgResearch", "RepoExplorer", "UnicodeInspector", "JwtDecoder",
    "decode_jwt", "graphemes",
]
