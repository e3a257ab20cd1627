"""
Change notifications.

Services are the single writer for each signal and send only after their
batch has committed; any number of receivers may subscribe. Receivers get the
sending service as ``sender`` plus keyword payloads. ``NotificationService``
subscribes per registry (``sender=`` filtered) and turns assignments, event
changes and new principals into stored notices.

Usage:
    from eventdesk.signals import stakeholder_assigned

    @stakeholder_assigned.connect
    def _on_assigned(sender, stakeholder_id, event_id, **extra):
        ...
"""

from blinker import Namespace

_signals = Namespace()

event_saved = _signals.signal("event-saved")
event_deleted = _signals.signal("event-deleted")
stakeholder_saved = _signals.signal("stakeholder-saved")
stakeholder_deleted = _signals.signal("stakeholder-deleted")
stakeholder_assigned = _signals.signal("stakeholder-assigned")
stakeholder_unassigned = _signals.signal("stakeholder-unassigned")
principal_updated = _signals.signal("principal-updated")
