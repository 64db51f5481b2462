from datetime import date, timedelta
import random

from oosan.pet import create_initial_state, run_session


def simulate(gaps: list[int], seed: int = 0) -> None:
    rng = random.Random(seed).random
    today = date(2024, 1, 1)
    state = create_initial_state(today)
    print(f"{today}: size={state.size_factor:.4f} {state.condition:<7} {state.latest_log}")
    for gap in gaps:
        today += timedelta(days=gap)
        state = run_session(state, today, rng).state
        print(
            f"{today} (+{gap}d): size={state.size_factor:.4f} "
            f"{state.condition:<7} {state.latest_log}"
        )


def main() -> None:
    simulate([0, 1, 1, 2, 3, 1, 1, 7, 1])


if __name__ == "__main__":
    main()
