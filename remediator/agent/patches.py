"""
Patch Synthesizer — Turns step outputs into a list of file patches

One more model call over all step results, asking for a JSON array of
create/update/delete patches. An unusable answer yields an empty list; an
empty list is also the legitimate "no changes needed" outcome, and only the
logs tell the two apart.
"""
from typing import List
import logging

from pydantic import ValidationError

from remediator.agent.parsing import extract_json
from remediator.config import AgentConfiguration
from remediator.models import FilePatch

logger = logging.getLogger(__name__)


PATCH_PROMPT = """Based on the following execution results, generate file patches that implement the fixes.

Objective: {objective}

Execution Results:
{results}

Return a JSON array of patches:
[
  {{
    "file": "path/to/file",
    "action": "create or update or delete",
    "content": "file content (for create/update)"
  }}
]

Guidelines:
- Create scripts in scripts/ directory with clear comments
- Use idempotent operations when possible
- Include error handling
- Add logging for observability
- Keep files under {max_kb}KB
- Maximum {max_files} files
- Use paths relative to the repository root

Return an empty array if no file changes are needed.
Return ONLY the JSON array, no markdown formatting.
"""


class PatchSynthesizer:
    """Derives file patches from executed plan steps"""

    def __init__(
        self,
        model,
        config: AgentConfiguration,
        max_files: int = 25,
        max_file_bytes: int = 50 * 1024,
    ):
        self.model = model
        self.config = config
        self.max_files = max_files
        self.max_file_bytes = max_file_bytes

    async def synthesize(self, plan, results) -> List[FilePatch]:
        """
        Ask the model for patches implementing the step outcomes.

        Never raises: a failed call or unparsable answer returns [].
        The size/count limits are guidance here; the safety gate enforces them.
        """
        logger.info("📝 Generating patches...")

        results_text = "\n\n".join(
            f"Step {r.step}: {'Success' if r.success else 'Failed'}\n"
            f"Output: {r.output if r.success else r.error}"
            for r in results
        )
        user_prompt = PATCH_PROMPT.format(
            objective=plan.objective,
            results=results_text,
            max_kb=self.max_file_bytes // 1024,
            max_files=self.max_files,
        )

        try:
            response = await self.model.complete(self.config.system_prompt, user_prompt)
        except Exception as e:
            logger.error(f"❌ Patch generation call failed: {e}")
            return []

        try:
            raw_patches = extract_json(response["text"], "[")
        except ValueError as e:
            logger.error(f"❌ Failed to parse patches: {e}")
            return []

        patches: List[FilePatch] = []
        for i, raw in enumerate(raw_patches, 1):
            try:
                patches.append(FilePatch.model_validate(raw))
            except ValidationError as e:
                logger.warning(f"⚠️ Dropping invalid patch #{i}: {e.errors()[0].get('msg', e)}")

        logger.info(f"✅ Generated {len(patches)} patch(es)")
        return patches
