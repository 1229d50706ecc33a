from config import Config
from core.constants import FALLBACK_PERSONA
from core.personality import load_persona


def test_system_prompt_wins(tmp_path):
    persona = tmp_path / "persona.md"
    persona.write_text("from file", encoding="utf-8")
    cfg = Config(system_prompt="inline", persona_path=str(persona))
    assert load_persona(cfg) == "inline"


def test_persona_file_is_used(tmp_path):
    persona = tmp_path / "persona.md"
    persona.write_text("  You are terse.\n", encoding="utf-8")
    assert load_persona(Config(persona_path=str(persona))) == "You are terse."


def test_missing_or_empty_file_falls_back(tmp_path):
    empty = tmp_path / "empty.md"
    empty.write_text("", encoding="utf-8")
    assert load_persona(Config(persona_path=str(empty))) == FALLBACK_PERSONA
    assert load_persona(Config(persona_path=str(tmp_path / "missing.md"))) == FALLBACK_PERSONA
    assert load_persona(Config()) == FALLBACK_PERSONA
