# -*- coding: utf-8 -*-
"""
Configuración y constantes para orchdiff.
"""
text_type = str
string_types = (str,)

# Patch document vocabulary (RFC 5261 element names)
PATCH_ADD = 'add'
PATCH_REPLACE = 'replace'
PATCH_REMOVE = 'remove'

TEXT_SELECTOR = 'text()'


class DiffConfig(object):
    """
    Runtime configuration for diffing and merging.

    Defaults live on the class; override them per instance, either by
    assignment or as keyword arguments:

    >>> config = DiffConfig(fail_on_conflict=True)
    >>> config.fail_on_conflict, DiffConfig.fail_on_conflict
    (True, False)
    """

    # Node correlation: attributes tried in order to build a NodeKey.
    identifying_attributes = ('id', 'name')
    # Per-localname override, e.g. {'message': ('msgType',)}
    key_attributes = {}
    # Attributes never compared (bookkeeping such as timestamps)
    ignore_attributes = ()

    # Strip text content; whitespace-only text is treated as absent.
    strip_text = True

    # Within a gap between matched siblings, emit deletions before insertions.
    delete_first = True

    # Merge is best-effort by default; set to stop at the first conflict.
    fail_on_conflict = False

    # Patch documents
    patch_root_tag = 'diff'
    generated_prefix = 'ns'
    pretty_print = True

    def __init__(self, **overrides):
        for name, value in overrides.items():
            if not hasattr(type(self), name):
                raise TypeError('unknown DiffConfig option %r' % name)
            setattr(self, name, value)

    def key_attributes_for(self, localname):
        """Attributes that identify an element with the given local name."""
        mapping = getattr(self, 'key_attributes', None) or {}
        if localname in mapping:
            return tuple(mapping[localname])
        return tuple(getattr(self, 'identifying_attributes', ()))
