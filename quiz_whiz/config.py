from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path

CONFIG_PATH = Path(__file__).resolve().parent.parent / "config.json"

DEFAULTS = {
    "tts_provider": "gemini",
    "gemini_voice": "Kore",
    "gemini_model": "gemini-2.5-flash-preview-tts",
    "elevenlabs_voice": "lfBVYbXnblkOddWFfEIg",
    "elevenlabs_model": "eleven_flash_v2_5",
    "edge_voice": "en-IN-NeerjaNeural",
    "default_theme": "light",
    "default_audio_mode": "none",
    "default_language": "English",
    "default_difficulty": "Medium",
    "output_dir": "exports",
    "app_prefix": "khelega_quiz",
    "narration_progress_start": 60,
    "narration_progress_end": 90,
    "muted": False,
}

# Provider-specific keys that the old shared tts_voice / tts_model map onto
_LEGACY_KEYS = {
    "gemini": {"tts_voice": "gemini_voice", "tts_model": "gemini_model"},
    "elevenlabs": {"tts_voice": "elevenlabs_voice", "tts_model": "elevenlabs_model"},
    "edge-tts": {"tts_voice": "edge_voice"},
}


@dataclass
class Settings:
    tts_provider: str = DEFAULTS["tts_provider"]
    gemini_voice: str = DEFAULTS["gemini_voice"]
    gemini_model: str = DEFAULTS["gemini_model"]
    elevenlabs_voice: str = DEFAULTS["elevenlabs_voice"]
    elevenlabs_model: str = DEFAULTS["elevenlabs_model"]
    edge_voice: str = DEFAULTS["edge_voice"]
    default_theme: str = DEFAULTS["default_theme"]
    default_audio_mode: str = DEFAULTS["default_audio_mode"]
    default_language: str = DEFAULTS["default_language"]
    default_difficulty: str = DEFAULTS["default_difficulty"]
    output_dir: str = DEFAULTS["output_dir"]
    app_prefix: str = DEFAULTS["app_prefix"]
    narration_progress_start: int = DEFAULTS["narration_progress_start"]
    narration_progress_end: int = DEFAULTS["narration_progress_end"]
    muted: bool = DEFAULTS["muted"]

    @property
    def project_root(self) -> Path:
        return Path(__file__).resolve().parent.parent

    @property
    def output_full_path(self) -> Path:
        p = Path(self.output_dir)
        return p if p.is_absolute() else self.project_root / p

    def to_dict(self) -> dict:
        return {
            "tts_provider": self.tts_provider,
            "gemini_voice": self.gemini_voice,
            "gemini_model": self.gemini_model,
            "elevenlabs_voice": self.elevenlabs_voice,
            "elevenlabs_model": self.elevenlabs_model,
            "edge_voice": self.edge_voice,
            "default_theme": self.default_theme,
            "default_audio_mode": self.default_audio_mode,
            "default_language": self.default_language,
            "default_difficulty": self.default_difficulty,
            "output_dir": self.output_dir,
            "app_prefix": self.app_prefix,
            "narration_progress_start": self.narration_progress_start,
            "narration_progress_end": self.narration_progress_end,
            "muted": self.muted,
        }


def load_settings() -> Settings:
    if CONFIG_PATH.exists():
        raw = json.loads(CONFIG_PATH.read_text())
        # Migrate: shared tts_voice / tts_model -> keys of the active provider
        mapping = _LEGACY_KEYS.get(raw.get("tts_provider", DEFAULTS["tts_provider"]), {})
        for old in ("tts_voice", "tts_model"):
            if old in raw:
                if old in mapping:
                    raw.setdefault(mapping[old], raw[old])
                del raw[old]
        known = {f.name for f in Settings.__dataclass_fields__.values()}
        filtered = {k: v for k, v in raw.items() if k in known}
        return Settings(**filtered)
    return Settings()


def save_settings(settings: Settings) -> None:
    CONFIG_PATH.write_text(json.dumps(settings.to_dict(), indent=4) + "\n")
