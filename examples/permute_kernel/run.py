import argparse
from pathlib import Path

import numpy as np


def main() -> None:
    parser = argparse.ArgumentParser()
    parser.add_argument("--input", required=True)
    parser.add_argument("--output", required=True)
    parser.add_argument("--dtype", required=True)
    parser.add_argument("--extents", required=True)
    parser.add_argument("--modes-a", required=True)
    parser.add_argument("--modes-b", required=True)
    parser.add_argument("--scale", type=float, default=1.0)
    args = parser.parse_args()

    extents = tuple(int(part) for part in args.extents.split(",") if part)
    a = np.fromfile(args.input, dtype=args.dtype).reshape(extents, order="F")
    axes = [args.modes_a.index(mode) for mode in args.modes_b]
    out = (np.transpose(a, axes) * np.dtype(args.dtype).type(args.scale)).astype(args.dtype)
    output_path = Path(args.output)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    out.reshape(-1, order="F").tofile(output_path)


if __name__ == "__main__":
    main()
