import sys

from model_compare.errors import PipelineStageError
from model_compare.pipeline import PipelineRunner


def main() -> None:
    """Run the full model comparison pipeline."""
    config_path = sys.argv[1] if len(sys.argv) > 1 else "config/default.yaml"
    runner = PipelineRunner(config_path)
    try:
        result = runner.run()
    except PipelineStageError as exc:
        runner.logger.error(f"Aborted at stage '{exc.stage}': {type(exc.cause).__name__}")
        sys.exit(1)

    runner.logger.info(
        f"Selected {result.best_model} at threshold {result.threshold:.6f}; "
        f"test sensitivity={result.test_metrics['sensitivity']:.4f}, "
        f"specificity={result.test_metrics['specificity']:.4f}"
    )


if __name__ == "__main__":
    main()
