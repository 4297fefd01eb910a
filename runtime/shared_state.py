"""Thin helpers to standardize shared_data lock-based access."""


def snapshot_locked(shared_data, reader):
    """Read a shared-data snapshot under lock using a caller-provided reader."""
    with shared_data["lock"]:
        return reader(shared_data)


def mutate_locked(shared_data, mutator):
    """Apply a mutation under lock using a caller-provided mutator."""
    with shared_data["lock"]:
        return mutator(shared_data)


def fleet_state_snapshot(shared_data):
    """Return the current immutable FleetState. Safe to hand to readers as-is."""
    return snapshot_locked(shared_data, lambda data: data["fleet_state"])


def transition_fleet_state(shared_data, transition):
    """
    Apply `transition(data, fleet_state) -> (new_fleet_state, result)` under lock.

    The new state replaces the old one in a single assignment so readers never
    observe a partially-updated fleet.
    """

    def _apply(data):
        new_state, result = transition(data, data["fleet_state"])
        data["fleet_state"] = new_state
        return result

    return mutate_locked(shared_data, _apply)


def allocate_id_locked(shared_data, counter_key, prefix):
    """Allocate the next sequential id. Caller must hold shared_data['lock']."""
    next_id = int(shared_data.get(counter_key, 1))
    shared_data[counter_key] = next_id + 1
    return f"{prefix}-{next_id:06d}"
