# -*- coding: utf-8 -*-
"""
Sinks: where the engines send their output.

A :class:`PatchSink` receives patch operations as the differ produces them,
so diff computation does not depend on the output format. An
:class:`EventSink` receives structured events (progress, conflicts); callers
inject one instead of the engines logging to global state.
"""
import logging


class PatchSink(object):
    """Receives operations in order: ``open`` once, ``emit`` each, ``close``."""

    def open(self, namespaces=None):
        """``namespaces`` maps namespace URIs to the prefixes paths should use."""

    def emit(self, operation):
        raise NotImplementedError

    def close(self):
        pass


class ListPatchSink(PatchSink):
    """Collects operations in memory."""

    def __init__(self):
        self.operations = []
        self.namespaces = {}

    def open(self, namespaces=None):
        self.namespaces = dict(namespaces or {})

    def emit(self, operation):
        self.operations.append(operation)


class EventSink(object):
    """Structured event receiver."""

    def event(self, name, **fields):
        raise NotImplementedError


class NullEventSink(EventSink):

    def event(self, name, **fields):
        pass


class RecordingEventSink(EventSink):
    """Keeps ``(name, fields)`` tuples; handy in tests."""

    def __init__(self):
        self.events = []

    def event(self, name, **fields):
        self.events.append((name, fields))

    def names(self):
        return [name for name, _fields in self.events]


class LoggingEventSink(EventSink):
    """
    Forwards events to a :mod:`logging` logger. Events whose name ends in
    ``.conflict`` or ``.warning`` are logged at WARNING, the rest at ``level``.
    """

    def __init__(self, logger=None, level=logging.DEBUG):
        self.logger = logger or logging.getLogger('orchdiff')
        self.level = level

    def event(self, name, **fields):
        level = self.level
        if name.endswith('.conflict') or name.endswith('.warning'):
            level = logging.WARNING
        if not self.logger.isEnabledFor(level):
            return
        details = ' '.join('%s=%s' % (k, fields[k]) for k in sorted(fields))
        self.logger.log(level, '%s %s', name, details)
