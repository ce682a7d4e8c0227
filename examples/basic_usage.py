#!/usr/bin/env python3
"""Programmatic workflow example.

This demonstrates using the engine directly:

* load settings from `.env`
* configure structured logging
* run a small workflow that retries a flaky step with ``repeat()``
  and hands values from one action to the next

The number of simulated failures is passed as an argument.
"""

from __future__ import annotations

import argparse
import asyncio
from typing import Sequence

from actionflow import ExecutionContext, StdlibLogSink, Workflow, WorkflowSettings
from actionflow.logging import configure_logging


def _parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Run a small workflow (programmatic example).")
    parser.add_argument("--failures", type=int, default=2, help="How often the flaky step fails")
    parser.add_argument("--value", default="hello", help="Initial value of the run")
    return parser.parse_args(argv)


def build_workflow(settings: WorkflowSettings, failures: int) -> Workflow:
    workflow = Workflow(settings=settings)
    if not settings.forward_to_logging:
        workflow.add_logger(StdlibLogSink())

    def prepare(ctx: ExecutionContext) -> None:
        ctx.notice(f"Preparing {ctx.value!r}")
        ctx.next_value = str(ctx.value).upper()

    async def flaky(ctx: ExecutionContext) -> str | None:
        ctx.state = (ctx.state or 0) + 1
        await asyncio.sleep(0.01)
        if ctx.state <= failures:
            ctx.warning(f"Attempt {ctx.state} failed, retrying")
            ctx.repeat()
            # keep handing the prepared value to the retry
            return ctx.previous_value
        return f"{ctx.previous_value} after {ctx.state} attempts"

    def report(ctx: ExecutionContext) -> None:
        ctx.result = ctx.previous_value
        ctx.notice(f"Finished: {ctx.result}")

    return workflow.then(prepare).then(flaky).then(report)


def main(argv: Sequence[str] | None = None) -> int:
    args = _parse_args(argv)

    settings = WorkflowSettings()
    configure_logging(settings.python_log_level)

    workflow = build_workflow(settings, args.failures)
    result = asyncio.run(workflow.start(args.value))

    print(f"Result: {result}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
