import sys
from pathlib import Path

# Ensure we import the repo-local orchdiff (not a pip-installed one).
ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT / "src"))

import orchdiff  # noqa: E402


def main():
    if len(sys.argv) != 3:
        print("usage: repro_diff_merge.py OLD.xml NEW.xml")
        return 2

    old_path, new_path = sys.argv[1], sys.argv[2]
    events = orchdiff.RecordingEventSink()
    old = orchdiff.build_tree(old_path)
    new = orchdiff.build_tree(new_path)

    ops = orchdiff.TreeDiffer(events=events).diff(old, new)
    print("operations:", len(ops))
    for op in ops:
        print("  ", op)
    print(orchdiff.render_patch(ops))

    result = orchdiff.merge_tree(old, orchdiff.parse_patch(orchdiff.render_patch(ops)), events=events)
    print("round trip ok:", result.ok and result.tree == new)
    for conflict in result.conflicts:
        print("  conflict:", conflict)
    print("events:", events.names())
    return 0 if result.ok else 1


if __name__ == "__main__":
    sys.exit(main())
