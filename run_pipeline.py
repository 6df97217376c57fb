from __future__ import annotations
import argparse
import logging
from pathlib import Path
import pandas as pd

from fitperf.analysis import run_analysis
from fitperf.config import AnalysisConfig, DatasetConfig
from fitperf.loader import load_datasets
from fitperf.selection import rank_datasets, summarize_datasets

def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Fitness vs. performance analysis of boolean model populations")
    parser.add_argument("--data-root", type=Path, required=True)
    parser.add_argument("--cell-line", action="append", required=True, dest="cell_lines")
    parser.add_argument("--population", action="append", dest="populations")
    parser.add_argument("--outdir", type=Path, default=Path("results"))
    parser.add_argument("--select", action="store_true",
                        help="analyse the top-ranked dataset instead of the first one given")
    parser.add_argument("--seed", type=int, default=0)
    parser.add_argument("--sample-size", type=int, default=None)
    parser.add_argument("--no-dedupe", action="store_true")
    parser.add_argument("--mcc-classes", type=int, default=4,
                        help="number of MCC classes; 0 means max(TP) - 1")
    parser.add_argument("--fitness-classes", type=int, default=4)
    parser.add_argument("--jobs", type=int, default=1)
    parser.add_argument("--verbose", action="store_true")
    return parser.parse_args(argv)

def main(argv=None):
    args = parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO,
                        format='%(levelname)s:%(name)s:%(message)s')

    data_cfg = DatasetConfig(
        data_root=args.data_root,
        cell_lines=tuple(args.cell_lines),
        populations=tuple(args.populations or ("models",)),
    )
    cfg = AnalysisConfig(
        seed=args.seed,
        sample_size=args.sample_size,
        dedupe=not args.no_dedupe,
        mcc_classes=args.mcc_classes or None,
        fitness_classes=args.fitness_classes,
    )

    datasets = load_datasets(data_cfg, n_jobs=args.jobs, progress=True)
    summary = rank_datasets(summarize_datasets(datasets.values()))

    if args.select:
        chosen = summary.index[0]
    else:
        chosen = f"{data_cfg.cell_lines[0]}/{data_cfg.populations[0]}"
    report = run_analysis(datasets[chosen], cfg)

    args.outdir.mkdir(parents=True, exist_ok=True)
    summary.to_csv(args.outdir / "dataset_summary.csv")
    frames = report.to_frames()
    for name, frame in frames.items():
        frame.to_csv(args.outdir / f"{name}.csv", index=not isinstance(frame.index, pd.RangeIndex))

    print(f"Analysed {chosen}: wrote {len(frames) + 1} tables to {args.outdir}")

if __name__ == "__main__":
    main()
