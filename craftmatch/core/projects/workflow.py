"""Project status state machine.

``open -> in_progress`` is deliberately absent from the table: that edge is
only taken by accepting a proposal, never by a direct status update.
"""

from craftmatch.common.enums import ProjectStatus

VALID_TRANSITIONS: dict[ProjectStatus, list[ProjectStatus]] = {
    ProjectStatus.OPEN: [ProjectStatus.CLOSED],
    ProjectStatus.IN_PROGRESS: [ProjectStatus.COMPLETED, ProjectStatus.CLOSED],
    ProjectStatus.COMPLETED: [ProjectStatus.CLOSED],
    ProjectStatus.CLOSED: [],
}


class InvalidStatusTransition(Exception):
    def __init__(self, current: ProjectStatus, target: ProjectStatus):
        super().__init__(f"Cannot transition from '{current.value}' to '{target.value}'")
        self.current = current
        self.target = target


def allowed_transitions(current: ProjectStatus) -> list[ProjectStatus]:
    return VALID_TRANSITIONS.get(current, [])


def resolve_transition(current: ProjectStatus, target: ProjectStatus) -> ProjectStatus | None:
    """Return the status to write, or ``None`` when ``target`` is already current."""
    if current == target:
        return None
    if target not in allowed_transitions(current):
        raise InvalidStatusTransition(current, target)
    return target


def accepts_proposals(status: ProjectStatus) -> bool:
    return status == ProjectStatus.OPEN
