"""Provider families the client knows how to talk to."""

from enum import Enum

__all__ = ["ProviderKind"]


class ProviderKind(str, Enum):
    """Provider family, derived from the description a provider reports
    when a connection is made. Behaviour that differs between families
    (filter grammar, default filters, some preferences) is keyed on this."""

    HFM = "HFM"
    ESSBASE = "Essbase"
    UNKNOWN = "Unknown"

    @classmethod
    def from_description(cls, description: str | None) -> "ProviderKind":
        """Classify a provider description such as
        ``"Hyperion Financial Management"`` or
        ``"Hyperion Analytic Services"``."""
        if not description:
            return cls.UNKNOWN
        if "Financial Management" in description:
            return cls.HFM
        if "Analytic Services" in description or "Essbase" in description:
            return cls.ESSBASE
        return cls.UNKNOWN
