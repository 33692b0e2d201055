"""
Pull request body rendering
"""
from typing import List, Optional

from remediator.models import FilePatch, PatchAction

ACTION_MARKERS = {
    PatchAction.CREATE: "✨",
    PatchAction.UPDATE: "📝",
    PatchAction.DELETE: "🗑️",
}

REVIEW_GUIDELINES = """### Review Guidelines

Please review the proposed changes carefully:
1. Verify the changes address the issue correctly
2. Check for any potential security or safety concerns
3. Ensure the changes follow project conventions
4. Test the changes if possible before merging"""

NEXT_STEPS = """### Next Steps

- ✅ **Approve and merge** if the changes look good
- 💬 **Comment** if you need clarifications or changes
- ❌ **Close** if the approach is incorrect"""


def render_pull_request_body(
    summary: str,
    patches: List[FilePatch],
    issue_number: Optional[int] = None,
    knowledge_bases: Optional[List[str]] = None,
    tool_servers: Optional[List[str]] = None,
) -> str:
    """Markdown body for a remediation pull request"""
    sections = ["## 🤖 Remediator Proposal"]
    if issue_number is not None:
        sections.append(f"This PR addresses issue #{issue_number}")

    sections.append(f"### Summary\n\n{summary}")

    changes = "\n".join(
        f"- {ACTION_MARKERS[p.action]} **{p.action.value}**: `{p.file}`" for p in patches
    )
    sections.append(f"### Changes\n\nThis PR includes {len(patches)} file change(s):\n\n{changes}")

    if knowledge_bases:
        sections.append("### Knowledge Base Referenced\n" + "\n".join(f"- {name}" for name in knowledge_bases))
    if tool_servers:
        sections.append("### Tool Servers\n" + "\n".join(f"- {name}" for name in tool_servers))

    sections.append(REVIEW_GUIDELINES)
    sections.append(NEXT_STEPS)
    sections.append("---\n*This PR was automatically generated by Remediator. Human review required.*")
    return "\n\n".join(sections) + "\n"
