"""
Template catalog exceptions.
"""

from .common import HospitalChatError


class UnsupportedTemplateKind(HospitalChatError):
    """Exception raised when a template kind has no wire rendering."""

    def __init__(self, kind):
        self.kind = kind
        super().__init__(f"Unsupported template kind: {getattr(kind, 'value', kind)}")
