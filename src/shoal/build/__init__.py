"""
Build system components for Shoal.

This module provides the build system implementation including:
- Content fingerprint change detection
- Compiler flag resolution
- Compilation unit selection
- Compilation, object relocation and linking
- Build orchestration
"""

from .build_utils import ensure_directories, safe_rmtree
from .compilation_executor import CompilationExecutor, ProcessRunner, SubprocessRunner
from .fingerprint_cache import FileFingerprint, FingerprintCache, FingerprintSnapshot, hash_file
from .flag_builder import MODE_PRESETS, BuildMode, FlagBuilder, PlatformDetector
from .orchestrator import BinaryResult, BuildOrchestrator, BuildResult
from .source_scanner import SourceScanner

__all__ = [
    'BinaryResult',
    'BuildMode',
    'BuildOrchestrator',
    'BuildResult',
    'CompilationExecutor',
    'FileFingerprint',
    'FingerprintCache',
    'FingerprintSnapshot',
    'FlagBuilder',
    'MODE_PRESETS',
    'PlatformDetector',
    'ProcessRunner',
    'SourceScanner',
    'SubprocessRunner',
    'ensure_directories',
    'hash_file',
    'safe_rmtree',
]
