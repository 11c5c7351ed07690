# run_report.py
# -----------------------------------------------------------------------------
# Full report: load -> split by wave -> (transform, stack, fit, summarise) per
# wave -> markdown report + CSV tables.
#
# Usage:
#   python -m terror_waves                         # all waves, default settings
#   python -m terror_waves --wave "Third Wave"     # one wave
#   python -m terror_waves --draws 500 --tune 500  # quick run
# -----------------------------------------------------------------------------
import argparse
import logging
import sys

from terror_waves import config
from terror_waves.data_processing.load_incidents import load_incidents, split_waves
from terror_waves.errors import DataValidationError
from terror_waves.models.joint_wave_model import FitSettings
from terror_waves.pipeline import run_waves
from terror_waves.tables.report import render_report, write_outputs

logger = logging.getLogger(__name__)


def build_parser():
    parser = argparse.ArgumentParser(
        description="Joint Bayesian regression of travel time and border distance per terrorism wave"
    )
    parser.add_argument("--data", default=str(config.PATH_INCIDENTS), help="Incident table (CSV/TSV)")
    parser.add_argument("--region", default=config.REGION, help="Region to analyse")
    parser.add_argument("--wave", action="append", choices=list(config.WAVES),
                        help="Wave to run (repeatable; default: all)")
    parser.add_argument("--draws", type=int, default=config.DRAWS)
    parser.add_argument("--tune", type=int, default=config.TUNE)
    parser.add_argument("--chains", type=int, default=config.CHAINS)
    parser.add_argument("--cores", type=int, default=config.CORES)
    parser.add_argument("--seed", type=int, default=config.RANDOM_SEED)
    parser.add_argument("--sampler", default=config.NUTS_SAMPLER,
                        choices=["pymc", "numpyro", "nutpie", "blackjax"], help="NUTS backend")
    parser.add_argument("--no-standardize", action="store_true",
                        help="Fit on raw coordinates instead of centered/scaled ones")
    parser.add_argument("--rhat-max", type=float, default=config.RHAT_MAX,
                        help="Fail a wave whose max R-hat exceeds this (<= 0 disables)")
    parser.add_argument("--save-posterior", action="store_true", help="Write posteriors as NetCDF")
    parser.add_argument("--out", default=None, help="Output directory (default: results/)")
    parser.add_argument("-v", "--verbose", action="store_true")
    return parser


def settings_from_args(args) -> FitSettings:
    return FitSettings(
        draws=args.draws, tune=args.tune, chains=args.chains, cores=args.cores,
        random_seed=args.seed, nuts_sampler=args.sampler,
        standardize=not args.no_standardize,
        rhat_max=args.rhat_max if args.rhat_max > 0 else None,
    )


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s - %(levelname)s - %(message)s",
    )

    waves = {w: config.WAVES[w] for w in (args.wave or config.WAVES)}

    try:
        incidents = load_incidents(args.data, region=args.region, wave_columns=waves.values())
    except DataValidationError as e:
        logger.error("[load] %s", e)
        return 2
    subsets = split_waves(incidents, waves)

    results, failures = run_waves(subsets, settings_from_args(args))

    report = render_report(results, failures, region=args.region, source=args.data)
    path = write_outputs(results, report, out_dir=args.out, save_posterior=args.save_posterior)
    print(report)
    logger.info("[OK] Report written to %s", path)

    if failures:
        logger.error("%d of %d wave(s) failed: %s", len(failures), len(waves), ", ".join(failures))
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
