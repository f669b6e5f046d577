from __future__ import annotations

from statemachine import State, StateMachine


class SessionLifecycle(StateMachine):
    """Lifecycle guard for a Session.

    - created: on_create ran, nobody has joined yet
    - active: at least one join succeeded
    - disposed: terminal; the session refuses further joins
    """

    created = State("created", value="created", initial=True)
    active = State("active", value="active")
    disposed = State("disposed", value="disposed", final=True)

    activate = created.to(active)
    dispose = created.to(disposed) | active.to(disposed)

    @property
    def closed(self) -> bool:
        return self.current_state == self.disposed

    @property
    def phase(self) -> str:
        return str(self.current_state.value)
