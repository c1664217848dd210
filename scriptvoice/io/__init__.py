"""Filesystem collaborators for scripts, reference templates, and generated files."""

from .storage import FileScriptStore, GeneratedFileIndex, ReferenceScriptLoader, ScriptStore

__all__ = ["FileScriptStore", "GeneratedFileIndex", "ReferenceScriptLoader", "ScriptStore"]
