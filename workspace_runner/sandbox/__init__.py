from .sandbox import Sandbox, SandboxError, SandboxOutcome, split_output
from .subprocess_sandbox import SubprocessSandbox

__all__ = ["Sandbox", "SandboxError", "SandboxOutcome", "SubprocessSandbox", "split_output"]
