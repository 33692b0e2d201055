"""
Working-directory configuration loader

Layout:
    <working_directory>/
        system-prompt.md        required
        knowledge-base/*.md     optional, also *.txt
        mcp-servers/*.yml       optional, one tool server per file (name = file stem)

Tool servers are registered in file-name order, which is also the order that
breaks tool-name ties between servers.
"""
from pathlib import Path
from typing import Dict, List
import logging

import yaml

from remediator.agent.tool_registry import ToolDescriptor
from remediator.config import AgentConfiguration, KnowledgeBase
from remediator.errors import ConfigurationError

logger = logging.getLogger(__name__)

SYSTEM_PROMPT_FILE = "system-prompt.md"
KNOWLEDGE_BASE_DIR = "knowledge-base"
TOOL_SERVERS_DIR = "mcp-servers"

KNOWLEDGE_SUFFIXES = (".md", ".txt")
DESCRIPTOR_SUFFIXES = (".yml", ".yaml")


class ConfigLoader:
    """Loads system prompt, knowledge bases and tool server descriptors"""

    def __init__(self, working_directory: str):
        self.working_directory = Path(working_directory)

    def load(self) -> AgentConfiguration:
        """
        Load the complete agent configuration.

        Raises:
            ConfigurationError: system prompt missing or a descriptor file is invalid
        """
        return AgentConfiguration(
            system_prompt=self.load_system_prompt(),
            knowledge_bases=self.load_knowledge_bases(),
            tool_descriptors=self.load_tool_descriptors(),
        )

    def load_system_prompt(self) -> str:
        path = self.working_directory / SYSTEM_PROMPT_FILE
        if not path.is_file():
            raise ConfigurationError(
                f"System prompt not found at {path}. Create a {SYSTEM_PROMPT_FILE} file in the working directory."
            )
        return path.read_text(encoding="utf-8")

    def load_knowledge_bases(self) -> List[KnowledgeBase]:
        directory = self.working_directory / KNOWLEDGE_BASE_DIR
        if not directory.is_dir():
            logger.warning(f"⚠️ Knowledge base directory not found at {directory}. Continuing without knowledge bases.")
            return []

        knowledge_bases = [
            KnowledgeBase(name=path.name, content=path.read_text(encoding="utf-8"))
            for path in sorted(directory.iterdir())
            if path.is_file() and path.suffix.lower() in KNOWLEDGE_SUFFIXES
        ]
        logger.info(f"📚 Loaded {len(knowledge_bases)} knowledge base(s)")
        return knowledge_bases

    def load_tool_descriptors(self) -> Dict[str, ToolDescriptor]:
        directory = self.working_directory / TOOL_SERVERS_DIR
        if not directory.is_dir():
            logger.warning(f"⚠️ Tool server directory not found at {directory}. Continuing without tool servers.")
            return {}

        descriptors: Dict[str, ToolDescriptor] = {}
        for path in sorted(directory.iterdir()):
            if not path.is_file() or path.suffix.lower() not in DESCRIPTOR_SUFFIXES:
                continue
            try:
                data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
            except yaml.YAMLError as e:
                raise ConfigurationError(f"Invalid tool server descriptor {path.name}: {e}") from e

            name = path.stem
            if name in descriptors:
                raise ConfigurationError(f"Duplicate tool server name '{name}' ({path.name})")
            descriptors[name] = ToolDescriptor.from_dict(name, data)
            logger.info(f"🔧 Loaded tool server descriptor: {name}")

        logger.info(f"✅ Loaded {len(descriptors)} tool server descriptor(s)")
        return descriptors
