"""Main entry point for the workflow-insights CLI (`python -m gptme_workflow_insights`)."""

from gptme_workflow_insights.cli import cli

if __name__ == "__main__":
    cli()
