"""
Safety gate — checks a patch set before it is proposed for review

Runs outside the Patch Synthesizer: the synthesizer only passes the limits to
the model as guidance, this gate enforces them.
"""
from typing import List
from dataclasses import dataclass, field
from pathlib import PurePosixPath

from remediator.models import FilePatch, PatchAction


@dataclass
class SafetyVerdict:
    approved: bool
    violations: List[str] = field(default_factory=list)


def check_path(path: str) -> List[str]:
    """Problems with a patch path, empty when it is a safe relative path"""
    problems = []
    normalized = path.replace("\\", "/")
    parts = PurePosixPath(normalized).parts
    if normalized.startswith("/") or (len(path) > 1 and path[1] == ":"):
        problems.append(f"{path}: absolute paths are not allowed")
    if ".." in parts:
        problems.append(f"{path}: path escapes the repository")
    if parts and parts[0] == ".git":
        problems.append(f"{path}: writes into .git are not allowed")
    return problems


def validate_patches(
    patches: List[FilePatch],
    max_files: int,
    max_file_bytes: int,
) -> SafetyVerdict:
    """
    Check patch count, per-file size, content presence and paths.

    Args:
        patches: Proposed patches
        max_files: Maximum number of patches
        max_file_bytes: Maximum UTF-8 size of a single patch's content

    Returns:
        SafetyVerdict listing every violation found
    """
    violations: List[str] = []

    if len(patches) > max_files:
        violations.append(f"{len(patches)} patches exceed the limit of {max_files}")

    for patch in patches:
        violations.extend(check_path(patch.file))
        if patch.action != PatchAction.DELETE and patch.content is None:
            violations.append(f"{patch.file}: content is required for {patch.action.value}")
        if patch.size_bytes > max_file_bytes:
            violations.append(
                f"{patch.file}: {patch.size_bytes} bytes exceeds the limit of {max_file_bytes}"
            )

    return SafetyVerdict(approved=not violations, violations=violations)
