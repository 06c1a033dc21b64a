# packages/jfk-store/jfk_store/errors.py
"""Error kinds shared by the store, the OCR assembler and the skills."""


class SkillError(Exception):
    """Base class: a skill record fails with this, other records are unaffected."""


class InvalidInput(SkillError, ValueError):
    """Missing/malformed RunInfo fields, empty artifact names, bad payloads."""


class StorageUnavailable(SkillError, RuntimeError):
    """Backend unreachable, write rejected (quota/auth) or timed out."""
