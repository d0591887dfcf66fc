"""Visual themes, rendered as CSS custom-property blocks on ``body.theme-<key>``."""
from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class Theme:
    key: str
    name: str
    colors: dict[str, str]

    def css(self) -> str:
        props = "\n".join(f"    --{k}: {v};" for k, v in self.colors.items())
        return f"body.theme-{self.key} {{\n{props}\n}}"


THEMES: dict[str, Theme] = {
    "dark": Theme("dark", "Nebula", {
        "color-bg-gradient-start": "#312e81",
        "color-bg-gradient-mid": "#1e1b4b",
        "color-bg-gradient-end": "#0f0a1f",
        "color-primary-400": "#a78bfa",
        "color-primary-500": "#8b5cf6",
        "color-primary-600": "#7c3aed",
        "color-primary-700": "#6d28d9",
        "color-text-base": "#f9fafb",
        "color-text-muted": "#d1d5db",
        "color-text-subtle": "#9ca3af",
        "color-surface-base": "#374151",
        "color-surface-border": "#4b5563",
        "color-surface-hover": "#4b5563",
        "color-glass-bg": "rgba(55, 65, 81, 0.45)",
        "color-glass-border": "rgba(167, 139, 250, 0.25)",
        "color-success": "#34d399",
        "color-error": "#f87171",
        "gradient-1": "#a78bfa",
        "gradient-2": "#f472b6",
        "gradient-3": "#60a5fa",
    }),
    "light": Theme("light", "Daylight", {
        "color-bg-gradient-start": "#e0f2fe",
        "color-bg-gradient-mid": "#f8fafc",
        "color-bg-gradient-end": "#ffffff",
        "color-primary-400": "#60a5fa",
        "color-primary-500": "#3b82f6",
        "color-primary-600": "#2563eb",
        "color-primary-700": "#1d4ed8",
        "color-text-base": "#1f2937",
        "color-text-muted": "#4b5563",
        "color-text-subtle": "#6b7280",
        "color-surface-base": "#ffffff",
        "color-surface-border": "#e5e7eb",
        "color-surface-hover": "#f3f4f6",
        "color-glass-bg": "rgba(255, 255, 255, 0.7)",
        "color-glass-border": "rgba(96, 165, 250, 0.3)",
        "color-success": "#059669",
        "color-error": "#dc2626",
        "gradient-1": "#2563eb",
        "gradient-2": "#7c3aed",
        "gradient-3": "#0891b2",
    }),
    "forest": Theme("forest", "Forest", {
        "color-bg-gradient-start": "#292524",
        "color-bg-gradient-mid": "#1c1917",
        "color-bg-gradient-end": "#0c0a09",
        "color-primary-400": "#fbbf24",
        "color-primary-500": "#f59e0b",
        "color-primary-600": "#d97706",
        "color-primary-700": "#b45309",
        "color-text-base": "#fef3c7",
        "color-text-muted": "#e7e5e4",
        "color-text-subtle": "#a8a29e",
        "color-surface-base": "#292524",
        "color-surface-border": "#44403c",
        "color-surface-hover": "#44403c",
        "color-glass-bg": "rgba(41, 37, 36, 0.55)",
        "color-glass-border": "rgba(251, 191, 36, 0.25)",
        "color-success": "#84cc16",
        "color-error": "#ef4444",
        "gradient-1": "#fbbf24",
        "gradient-2": "#84cc16",
        "gradient-3": "#f97316",
    }),
    "minimalist": Theme("minimalist", "Minimalist", {
        "color-bg-gradient-start": "#ffffff",
        "color-bg-gradient-mid": "#ffffff",
        "color-bg-gradient-end": "#ffffff",
        "color-primary-400": "#374151",
        "color-primary-500": "#374151",
        "color-primary-600": "#1f2937",
        "color-primary-700": "#111827",
        "color-text-base": "#111827",
        "color-text-muted": "#374151",
        "color-text-subtle": "#6b7280",
        "color-surface-base": "#ffffff",
        "color-surface-border": "#e5e7eb",
        "color-surface-hover": "#f3f4f6",
        "color-glass-bg": "#ffffff",
        "color-glass-border": "#e5e7eb",
        "color-success": "#15803d",
        "color-error": "#b91c1c",
        "gradient-1": "#111827",
        "gradient-2": "#374151",
        "gradient-3": "#111827",
    }),
}

DEFAULT_THEME = "light"

# Themes that hide the generated background image
PLAIN_THEMES = frozenset({"minimalist"})


def get_theme(key: str) -> Theme:
    try:
        return THEMES[key]
    except KeyError:
        raise ValueError(f"Unknown theme: {key!r} (expected one of {', '.join(THEMES)})") from None


def all_themes_css() -> str:
    return "\n\n".join(t.css() for t in THEMES.values())
