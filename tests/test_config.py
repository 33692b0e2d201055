import pytest
from pydantic import ValidationError

from remediator.agent.tool_registry import TransportKind
from remediator.config import Settings
from remediator.config_loader import ConfigLoader
from remediator.errors import ConfigurationError

# ---------------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------------

def test_action_inputs_populate_settings(monkeypatch):
    monkeypatch.setenv("INPUT_ISSUE_NUMBER", "42")
    monkeypatch.setenv("INPUT_AGENT_MODE", "propose")
    monkeypatch.setenv("INPUT_DRY_RUN", "true")
    settings = Settings(_env_file=None)
    assert settings.ISSUE_NUMBER == 42
    assert settings.AGENT_MODE == "propose"
    assert settings.DRY_RUN is True

def test_blank_action_inputs_are_none(monkeypatch):
    monkeypatch.setenv("INPUT_ISSUE_NUMBER", "")
    monkeypatch.setenv("INPUT_USER_PROMPT_PATH", "  ")
    settings = Settings(_env_file=None)
    assert settings.ISSUE_NUMBER is None
    assert settings.USER_PROMPT_PATH is None

def test_repository_split():
    assert Settings(GITHUB_REPOSITORY="acme/infra").repository == ("acme", "infra")

@pytest.mark.parametrize("field", ["AGENT_MAX_STEPS", "MAX_PATCH_FILES", "MAX_PATCH_BYTES"])
@pytest.mark.parametrize("value", [0, -1])
def test_limits_must_be_positive(field, value):
    with pytest.raises(ValidationError, match=field):
        Settings(_env_file=None, **{field: value})

@pytest.mark.parametrize("value", ["", "acme", "/infra", "acme/"])
def test_repository_must_be_owner_slash_repo(value):
    with pytest.raises(ConfigurationError, match="owner/repo"):
        Settings(GITHUB_REPOSITORY=value).repository

def test_model_token_prefers_explicit_token():
    assert Settings(GITHUB_TOKEN="gh", MODEL_TOKEN="m").model_token == "m"

# ---------------------------------------------------------------------------
# Working-directory loader
# ---------------------------------------------------------------------------

def write_layout(root):
    (root / "system-prompt.md").write_text("You are a careful SRE.", encoding="utf-8")
    kb = root / "knowledge-base"
    kb.mkdir()
    (kb / "b-runbook.md").write_text("runbook", encoding="utf-8")
    (kb / "a-notes.txt").write_text("notes", encoding="utf-8")
    (kb / "image.png").write_bytes(b"\x89PNG")
    servers = root / "mcp-servers"
    servers.mkdir()
    (servers / "filesystem.yml").write_text(
        "command: npx\nargs: ['-y', '@modelcontextprotocol/server-filesystem', '.']\n", encoding="utf-8"
    )
    (servers / "search.yaml").write_text(
        "url: https://search.example/mcp\nheaders:\n  Authorization: Bearer ${env:SEARCH_TOKEN}\n",
        encoding="utf-8",
    )

def test_load_full_layout(tmp_path):
    write_layout(tmp_path)
    config = ConfigLoader(str(tmp_path)).load()

    assert config.system_prompt == "You are a careful SRE."
    assert [kb.name for kb in config.knowledge_bases] == ["a-notes.txt", "b-runbook.md"]
    assert list(config.tool_descriptors) == ["filesystem", "search"]
    assert config.tool_descriptors["search"].transport == TransportKind.HTTP
    # markers stay unresolved until sessions open
    assert config.tool_descriptors["search"].headers["Authorization"] == "Bearer ${env:SEARCH_TOKEN}"

def test_missing_system_prompt_is_fatal(tmp_path):
    with pytest.raises(ConfigurationError, match="system-prompt.md"):
        ConfigLoader(str(tmp_path)).load()

def test_optional_directories_may_be_missing(tmp_path):
    (tmp_path / "system-prompt.md").write_text("prompt", encoding="utf-8")
    config = ConfigLoader(str(tmp_path)).load()
    assert config.knowledge_bases == []
    assert config.tool_descriptors == {}

def test_malformed_descriptor_is_configuration_error(tmp_path):
    (tmp_path / "system-prompt.md").write_text("prompt", encoding="utf-8")
    servers = tmp_path / "mcp-servers"
    servers.mkdir()
    (servers / "broken.yml").write_text("command: [unclosed\n", encoding="utf-8")
    with pytest.raises(ConfigurationError, match="broken.yml"):
        ConfigLoader(str(tmp_path)).load()

def test_duplicate_server_names_are_rejected(tmp_path):
    (tmp_path / "system-prompt.md").write_text("prompt", encoding="utf-8")
    servers = tmp_path / "mcp-servers"
    servers.mkdir()
    (servers / "fs.yml").write_text("command: a\n", encoding="utf-8")
    (servers / "fs.yaml").write_text("command: b\n", encoding="utf-8")
    with pytest.raises(ConfigurationError, match="Duplicate tool server name 'fs'"):
        ConfigLoader(str(tmp_path)).load()
