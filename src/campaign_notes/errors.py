"""Exception types raised by campaign_notes."""
from __future__ import annotations


class CampaignNotesError(RuntimeError):
    """Base class for campaign_notes errors."""


class SettingsError(CampaignNotesError):
    """Raised when a settings file is missing or invalid."""


class VaultError(CampaignNotesError):
    """Raised when a vault root is missing or a path escapes it."""
