"""Configuration defaults for the TV overlay toolkit.

Provides the ``Settings`` dataclass that holds every tunable parameter
for the editor canvas, export/import envelope, interface registry,
backend API client, and overlay renderer.

Typical usage::

    from tv_overlay.config.settings import get_default_settings

    settings = get_default_settings()
    print(settings.canvas_width, settings.canvas_height)
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, fields
from typing import Any


@dataclass(frozen=True)
class Settings:
    """Immutable configuration for the whole toolkit.

    Each attribute group maps to one architectural component.

    Attributes:
        canvas_width: Width of the editor's working canvas.  Region
            coordinates are authored in this space.
        canvas_height: Height of the editor's working canvas.
        export_version: Version tag written into export envelopes.
        import_name_suffix: Marker appended to the name of every
            imported interface.
        copy_name_suffix: Marker appended to the name of a duplicated
            interface when no explicit name is given.
        remint_region_ids_on_import: When True, imported region ids are
            replaced with freshly generated ones.
        default_page_size: Page size used by ``InterfaceRegistry.list``
            when the caller does not pass ``limit``.
        api_base_url: Root URL of the support backend REST API.
        api_timeout_seconds: HTTP timeout for backend requests.
        api_max_retries: Maximum number of attempts for transient API
            failures (5xx and transport errors).
        api_backoff_base_seconds: Base delay for exponential back-off
            between API retries.
        outline_color: Hex colour used to outline clickable areas in
            rendered previews.
        outline_thickness: Outline stroke width in pixels.
        animation_period_ms: Period used for highlight animations that
            carry no explicit ``duration``.
    """

    # -- Editor canvas --------------------------------------------------------
    canvas_width: int = 800
    canvas_height: int = 450

    # -- Export / import ------------------------------------------------------
    export_version: str = "1.0"
    import_name_suffix: str = " (imported)"
    copy_name_suffix: str = " (copy)"
    remint_region_ids_on_import: bool = False

    # -- Interface registry ---------------------------------------------------
    default_page_size: int = 50

    # -- API settings ---------------------------------------------------------
    api_base_url: str = "http://localhost:3000/api"
    api_timeout_seconds: float = 30.0
    api_max_retries: int = 3
    api_backoff_base_seconds: float = 1.0

    # -- Renderer -------------------------------------------------------------
    outline_color: str = "#22c55e"
    outline_thickness: int = 2
    animation_period_ms: float = 1500.0

    # -- Factory & serialisation ----------------------------------------------

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Settings:
        """Create a ``Settings`` instance from a plain dictionary.

        Unknown keys are silently ignored so that newer config files do
        not break older toolkit versions.

        Args:
            data: Dictionary whose keys correspond to ``Settings``
                field names.

        Returns:
            A new ``Settings`` instance populated from *data*, with
            defaults filling any missing keys.
        """
        known_names = {f.name for f in fields(cls)}
        filtered = {k: v for k, v in data.items() if k in known_names}
        return cls(**filtered)

    def to_dict(self) -> dict[str, Any]:
        """Serialise the settings to a plain dictionary.

        Returns:
            A shallow dictionary mapping every field name to its
            current value.
        """
        return asdict(self)


def get_default_settings() -> Settings:
    """Return a ``Settings`` instance with all default values.

    Call ``Settings.from_dict`` when you need to overlay user overrides
    on top of the defaults.

    Returns:
        A freshly constructed ``Settings`` with default values.
    """
    return Settings()
