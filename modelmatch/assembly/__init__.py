"""Assembly resolution package."""

from modelmatch.assembly.models import AssemblyNode, LookupWarning, collect_warnings
from modelmatch.assembly.resolver import AssemblyResolver

__all__ = ["AssemblyNode", "AssemblyResolver", "LookupWarning", "collect_warnings"]
