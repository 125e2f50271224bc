import asyncio
from pathlib import Path
from typing import Annotated

import typer
from langchain_core.language_models.chat_models import BaseChatModel
from pydantic import BaseModel
from rich.console import Console

from mobile_pilot.config import (
    DriverType,
    Settings,
    initialize_device_config,
    initialize_llm_config,
)
from mobile_pilot.context import PilotContext
from mobile_pilot.controllers.controller_factory import create_device_controller
from mobile_pilot.controllers.device_controller import MobileDeviceController
from mobile_pilot.graph.graph import Outcome, classify_outcome, run_graph
from mobile_pilot.observability.healing_logger import (
    HealingLogger,
    HealingSummary,
    format_healing_report,
)
from mobile_pilot.services.llm import ReasoningService, get_llm
from mobile_pilot.services.vision_fallback import create_vision_fallback
from mobile_pilot.utils.errors import MobilePilotError
from mobile_pilot.utils.logger import get_logger

app = typer.Typer(add_completion=False, pretty_exceptions_enable=False)
logger = get_logger(__name__)


class ExecutionResult(BaseModel):
    success: bool
    goal: str
    action_history: list[str]
    final_state: Outcome
    errors: list[str]
    healing_summary: HealingSummary


async def run_automation(
    goal: str,
    driver: DriverType | None = None,
    device: str | None = None,
    model: str | None = None,
    host: str | None = None,
    enable_vision_fallback: bool | None = None,
    settings: Settings | None = None,
    llm: BaseChatModel | None = None,
    controller: MobileDeviceController | None = None,
) -> ExecutionResult:
    """
    Run the agent on the configured device until the goal is reached or a budget runs out.

    `llm` and `controller` replace the configured model and device when given.
    """
    settings = settings or Settings()
    llm_config = initialize_llm_config(settings).with_overrides(model=model, base_url=host)
    device_config = initialize_device_config(settings).with_overrides(
        driver_type=driver, device_name=device
    )
    if enable_vision_fallback is None:
        enable_vision_fallback = settings.ENABLE_VISION_FALLBACK

    if controller is None:
        controller = create_device_controller(device_config)
    if llm is None:
        llm = get_llm(llm_config)
    healing_logger = HealingLogger()
    ctx = PilotContext(
        controller=controller,
        reasoning_service=ReasoningService(llm),
        llm_config=llm_config,
        vision_fallback=create_vision_fallback(llm) if enable_vision_fallback else None,
        healing_logger=healing_logger,
    )
    if enable_vision_fallback:
        logger.info("Vision fallback enabled for self-healing")

    await controller.connect()
    try:
        final_state = await run_graph(ctx, goal)
    finally:
        await controller.disconnect()

    outcome = classify_outcome(final_state)
    return ExecutionResult(
        success=outcome == "completed",
        goal=goal,
        action_history=final_state.action_history,
        final_state=outcome,
        errors=final_state.errors,
        healing_summary=healing_logger.get_summary(),
    )


def display_result(console: Console, result: ExecutionResult) -> None:
    status = "[bold green]SUCCESS[/bold green]" if result.success else "[bold red]FAILED[/bold red]"
    console.rule("Automation result")
    console.print(f"Goal: {result.goal}", markup=False)
    console.print(f"Status: {status} ({result.final_state})")
    console.print("Actions taken:")
    for i, entry in enumerate(result.action_history, start=1):
        console.print(f"  {i}. {entry}", markup=False)
    if result.errors:
        console.print("[yellow]Errors encountered:[/yellow]")
        for error in result.errors:
            console.print(f"  - {error}", markup=False)
    console.print(format_healing_report(result.healing_summary), markup=False, highlight=False)


@app.command()
def main(
    goal: Annotated[str, typer.Argument(help="The goal for the agent to achieve.")],
    driver: Annotated[
        str | None,
        typer.Option("--driver", "-d", help="Device driver: mock, android or ios."),
    ] = None,
    device: Annotated[
        str | None,
        typer.Option("--device", help="Device serial (android) or UDID."),
    ] = None,
    model: Annotated[
        str | None,
        typer.Option("--model", "-m", help="Vision model used for reasoning and healing."),
    ] = None,
    host: Annotated[
        str | None,
        typer.Option("--host", help="Model server URL (e.g. http://localhost:11434)."),
    ] = None,
    no_vision_fallback: Annotated[
        bool,
        typer.Option("--no-vision-fallback", help="Disable vision-based self-healing."),
    ] = False,
    healing_report: Annotated[
        Path | None,
        typer.Option("--healing-report", help="Write the healing session summary as JSON."),
    ] = None,
):
    """
    Run mobile-pilot to drive a mobile device toward a natural-language goal.
    """
    console = Console()

    if driver is not None and driver not in ("mock", "android", "ios"):
        console.print(f"[red]Unknown driver: {driver}[/red]")
        raise typer.Exit(code=1)

    try:
        result = asyncio.run(
            run_automation(
                goal=goal,
                driver=driver,  # type: ignore[arg-type]
                device=device,
                model=model,
                host=host,
                enable_vision_fallback=False if no_vision_fallback else None,
            )
        )
    except MobilePilotError as e:
        console.print(f"[red]Error:[/red] {e.message}")
        raise typer.Exit(code=1)

    display_result(console, result)
    if healing_report is not None:
        healing_report.write_text(result.healing_summary.model_dump_json(indent=2), encoding="utf-8")
        console.print(f"Healing report written to {healing_report}", markup=False)

    raise typer.Exit(code=0 if result.success else 1)


def cli():
    app()


if __name__ == "__main__":
    cli()
