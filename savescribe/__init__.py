"""
savescribe: Game Data Value Detection & Safe Rewrite Engine
===========================================================
Finds likely game values (currency, levels, experience, stats, settings)
in save and config files of unknown format, ranks them by confidence and
rewrites a confirmed value in place without disturbing the rest of the file.
"""

from savescribe.analysis import analyse_bytes, analyze, classify_structure
from savescribe.compare import ChangeKind, ValueChange, compare_bytes, compare_files, summarise
from savescribe.config import DEFAULT_CONFIG, EngineConfig, load_config
from savescribe.export import export_csv, export_json, export_txt
from savescribe.models import (
    AnalysisResult, Candidate, Category, DataType, DetectedStructure,
    SourceKind, StructureKind,
)
from savescribe.profiles import (
    Modification, ModificationProfile, apply_profile, apply_profile_file, build_profile,
    export_profile, load_profile, validate_profile,
)
from savescribe.rewriter import rewrite, rewrite_bytes, validate
from savescribe.storage import FileAccess, LocalFileAccess

__version__ = "1.0.0"
__author__ = "drixpyyy"
__license__ = "MIT"
__description__ = "Game data value detection and safe rewrite engine"

__all__ = [
    "AnalysisResult", "Candidate", "Category", "DataType", "DetectedStructure",
    "SourceKind", "StructureKind", "EngineConfig", "DEFAULT_CONFIG", "load_config",
    "FileAccess", "LocalFileAccess", "analyze", "analyse_bytes", "classify_structure",
    "rewrite", "rewrite_bytes", "validate", "export_txt", "export_json", "export_csv",
    "ChangeKind", "ValueChange", "compare_bytes", "compare_files", "summarise",
    "Modification", "ModificationProfile", "build_profile", "export_profile", "load_profile",
    "validate_profile", "apply_profile", "apply_profile_file",
]
