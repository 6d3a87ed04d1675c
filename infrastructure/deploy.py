#!/usr/bin/env python3
"""
Deployment script for the DevOps notification CDK stack
"""

import argparse
import logging
import subprocess
import sys
from pathlib import Path
from typing import List, Optional

# Add the project root to Python path
project_root = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(project_root))

from src.shared.config import StackConfig, load_stack_config

logger = logging.getLogger(__name__)

CDK_APP = project_root / "infrastructure" / "aws_cdk" / "app.py"


def build_cdk_command(action: str, config: StackConfig, require_approval: str = "never") -> List[str]:
    """
    Build the cdk CLI command for the given action

    Every parameter is passed explicitly so that clearing an endpoint
    removes its subscription instead of reusing the previous value.

    Args:
        action: 'synth' or 'deploy'
        config: Stack configuration
        require_approval: Value of cdk's --require-approval flag

    Returns:
        Command as an argument list
    """
    command = ["cdk", action, "--app", f"{sys.executable} {CDK_APP}"]

    if config.stack_name:
        command.extend(["--context", f"stack_name={config.stack_name}", config.stack_name])

    if action == "deploy":
        command.extend(["--require-approval", require_approval])
        for name, value in config.to_cfn_parameters().items():
            command.extend(["--parameters", f"{name}={value}"])

    return command


def main(argv: Optional[List[str]] = None) -> int:
    """Main deployment function"""
    parser = argparse.ArgumentParser(description="Synthesize or deploy the DevOps notifications stack")
    parser.add_argument("action", choices=["synth", "deploy"], help="cdk action to run")
    parser.add_argument("--env-file", help="Path to a .env file with the stack configuration")
    parser.add_argument("--require-approval", default="never", choices=["never", "any-change", "broadening"])
    parser.add_argument("--verbose", action="store_true", help="Enable verbose logging")
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO)

    config = load_stack_config(args.env_file)
    try:
        config.validate()
    except ValueError as e:
        logger.error(f"Error: {e}")
        return 1

    logger.info(
        f"Running cdk {args.action} for {config.stack_name}, "
        f"enabled channels: {', '.join(config.channels.enabled_channels()) or 'none'}"
    )

    command = build_cdk_command(args.action, config, args.require_approval)
    try:
        subprocess.run(command, check=True, cwd=project_root)
    except FileNotFoundError:
        logger.error("Error: the cdk CLI is not installed (npm install -g aws-cdk)")
        return 1
    except subprocess.CalledProcessError as e:
        logger.error(f"cdk {args.action} failed with exit code {e.returncode}")
        return e.returncode

    return 0


if __name__ == "__main__":
    sys.exit(main())
