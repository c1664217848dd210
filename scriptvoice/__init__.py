"""Top-level package for Scriptvoice.

This package turns a topic into a narrated audio file: an outline is planned,
a long-form script is written and validated, and the script is synthesized
chunk by chunk into one audio artifact. The main orchestration entry point is
`ScriptvoiceWorkflow`; `JobStreamClient` drives the same operations over HTTP.
"""

from .client import JobFailedError, JobStreamClient
from .workflow import ScriptvoiceWorkflow

__all__ = ["JobFailedError", "JobStreamClient", "ScriptvoiceWorkflow", "__version__"]

__version__ = "0.3.0"
