"""
Renders raw retrosynthesis predictions into positioned route graphs.

This script performs the following actions:
1.  Loads a map of target IDs to target SMILES.
2.  Loads a stock export ("SMILES,InChi Key" CSV) to mark purchasable molecules.
3.  Uses the adapter for the chosen model format to turn raw predictions into
    route trees with canonical SMILES and InChIKeys.
4.  Optionally loads ground-truth routes (same raw format) and attaches a diff
    overlay against them to every predicted route.
5.  Saves the graphs and a manifest.json to the output directory.

Example Usage:
    uv run scripts/render-predictions.py \
        --model-name "dms_explorer_xl" \
        --format dms \
        --raw-file "data/evaluations/dms_explorer_xl/results.json.gz" \
        --output-dir "data/rendered/dms_explorer_xl" \
        --targets-file "data/targets.json.gz" \
        --stock-file "data/stocks/buyables-stock-export.txt" \
        --ground-truth-file "data/ground-truth.json.gz"
"""

import argparse
from pathlib import Path

from retroviz.adapters.aizynth_adapter import AizynthAdapter
from retroviz.adapters.base_adapter import BaseAdapter
from retroviz.adapters.dms_adapter import DMSAdapter
from retroviz.core import prepare_ground_truth, render_model_run
from retroviz.exceptions import RetrovizException
from retroviz.io import load_and_prepare_targets, load_json_gz, load_stock_keys
from retroviz.utils.logging import logger

ADAPTERS: dict[str, type[BaseAdapter]] = {"dms": DMSAdapter, "aizynth": AizynthAdapter}


def main() -> None:
    """Main function to parse arguments and orchestrate the rendering."""
    # fmt:off
    parser = argparse.ArgumentParser(description="Render retrosynthesis predictions into route graphs.")
    parser.add_argument("--model-name", type=str, required=True,
           help="A unique name for this model run (e.g., 'aizynth_v1_run1').")
    parser.add_argument("--format", choices=sorted(ADAPTERS), required=True,
           help="Raw output format of the model.")
    parser.add_argument("--raw-file", type=Path, required=True,
           help="Path to the raw *.json.gz output file of the model.")
    parser.add_argument("--output-dir", type=Path, required=True,
           help="Directory where the rendered graphs will be saved.")
    parser.add_argument("--targets-file", type=Path, required=True,
           help="Path to a file mapping target IDs to their SMILES strings.")
    parser.add_argument("--stock-file", type=Path, default=None,
           help="Stock export with a 'SMILES,InChi Key' header.")
    parser.add_argument("--ground-truth-file", type=Path, default=None,
           help="Reference routes per target, in the same raw format as the predictions.")
    parser.add_argument("--top-k", type=int, default=None,
           help="Only render the first k unique routes of every target.")
    # fmt:on
    args = parser.parse_args()

    try:
        targets_map = load_and_prepare_targets(args.targets_file)
        adapter = ADAPTERS[args.format]()
        stock_keys = load_stock_keys(args.stock_file) if args.stock_file else set()

        ground_truth = None
        if args.ground_truth_file:
            ground_truth = prepare_ground_truth(load_json_gz(args.ground_truth_file), adapter, targets_map)

        render_model_run(
            model_name=args.model_name,
            adapter=adapter,
            raw_results_file=args.raw_file,
            output_dir=args.output_dir,
            targets_map=targets_map,
            stock_keys=stock_keys,
            ground_truth=ground_truth,
            top_k=args.top_k,
        )
        logger.info("Script finished successfully.")

    except RetrovizException as e:
        logger.error(f"A critical error occurred during rendering: {e}")
        exit(1)
    except Exception as e:
        logger.critical(f"An unexpected, non-retroviz error occurred: {e}", exc_info=True)
        exit(1)


if __name__ == "__main__":
    main()
