"""
Run with root or with `sudo setcap cap_net_raw+ep $(realpath $(which python))`
"""

from rich import print

from pingx import Statistics, probe


def main():
    stats = Statistics()
    for sequence in range(3):
        outcome = probe("1.1.1.1", 4, 64, sequence, 1.0)
        stats.record(outcome)
        print(str(outcome))
    print(stats.summary())


if __name__ == "__main__":
    main()
