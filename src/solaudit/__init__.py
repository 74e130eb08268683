__all__ = [
    "Category",
    "Checklist",
    "ChecklistError",
    "CodeReference",
    "Finding",
    "Item",
    "ParseError",
    "ProgressTracker",
    "Severity",
    "Status",
    "UnknownItemError",
    "ValidationError",
    "load_checklist_from_path",
    "load_default_checklist",
    "parse_definition",
    "render",
]

from .errors import ChecklistError, ParseError, UnknownItemError, ValidationError
from .loader import load_checklist_from_path, load_default_checklist, parse_definition
from .models import Category, Checklist, CodeReference, Finding, Item, Severity, Status
from .report import render
from .tracker import ProgressTracker
