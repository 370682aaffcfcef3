"""
Console wizard: runs a warehouse configuration conversation in the terminal.

Uses the real driver, extractor, reconciler, and gateways. Without an
OpenAI API key every dialogue call fails, so the heuristic extractor and
the deterministic fallback questions carry the conversation on their own.

Usage:
    python console_demo.py
    python console_demo.py --scenario dimensions
"""

import argparse
import asyncio
from typing import Optional

from src.agents.dialogue_service import DialogueService, OpenAIDialogueService
from src.config import settings
from src.conversation.driver import ConversationDriver, TurnResult
from src.conversation.events import CompletionEvent
from src.errors import ExportError, SessionCompletedError
from src.tools.config_store import JsonConfigStore
from src.tools.spreadsheet_export import SpreadsheetExporter
from src.tools.visualization import VisualizationPanel, VisualizationSummary

BLUE = "\033[94m"
GREEN = "\033[92m"
YELLOW = "\033[93m"
RED = "\033[91m"
DIM = "\033[2m"
RESET = "\033[0m"
BOLD = "\033[1m"


class ConsoleSession:
    """Drives one wizard session from terminal input."""

    # Pre-scripted scenarios for --scenario flag
    SCENARIOS: dict[str, list[str]] = {
        "dimensions": [
            "The ceiling is 12 meters high",
            "It's 30m by 20m",
            "We use euro pallets",
            "We need room for 450 pallets",
            "Selective racking please",
        ],
        "one-shot": [
            "30 meters long, 20 wide, 12 high, 450 euro pallets on drive-in racks",
        ],
    }

    MAX_INPUT_LENGTH = 2000

    def __init__(
        self,
        dialogue: Optional[DialogueService] = None,
        store: Optional[JsonConfigStore] = None,
        exporter: Optional[SpreadsheetExporter] = None,
    ) -> None:
        self.store = store or JsonConfigStore()
        self.exporter = exporter or SpreadsheetExporter()
        self.panel = VisualizationPanel()
        self.driver = ConversationDriver(dialogue or OpenAIDialogueService(), store=self.store)
        self.panel.attach(self.driver.channel)
        self.driver.channel.subscribe(self._on_completion)

    def agent_say(self, text: str) -> None:
        print(f"{GREEN}{BOLD}[Assistant]{RESET} {GREEN}{text}{RESET}")

    def system_log(self, text: str) -> None:
        print(f"{DIM}  >> {text}{RESET}")

    def _banner(self, title: str) -> None:
        print()
        print(f"{BOLD}{'=' * 60}{RESET}")
        print(f"{BOLD}  {settings.app_name.upper()} - {title}{RESET}")
        print(f"{BOLD}{'=' * 60}{RESET}")
        print()

    def _on_completion(self, event: CompletionEvent) -> None:
        self.system_log(f"Completion event (extraction_failed={event.extraction_failed})")

    def _show_summary(self) -> None:
        summary = self.panel.latest or VisualizationSummary.from_record(self.driver.record)
        self.system_log(
            f"Dimensions: {summary.dimensions} | Pallets: {summary.pallets} "
            f"| Storage: {summary.storage_type}"
        )

    def _export(self) -> None:
        try:
            handle = self.exporter.render(self.driver.record)
        except ExportError as e:
            print(f"{RED}Export failed, please try again: {e}{RESET}")
            return
        self.system_log(f"Exported to {self.exporter.export_dir / (handle + '.xlsx')}")

    def _show_result(self, result: TurnResult) -> None:
        self.agent_say(result.display_text)
        if result.warning:
            print(f"{YELLOW}  ! {result.warning}{RESET}")
        self.system_log(f"State: {result.state.value}")
        self._show_summary()

    async def _process_input(self, text: str) -> Optional[TurnResult]:
        try:
            result = await self.driver.submit(text)
        except SessionCompletedError:
            self.agent_say("Your configuration is complete. Type /export or quit.")
            return None
        self._show_result(result)
        await self.driver.wait_for_persistence()
        for error in self.driver.persistence_errors:
            print(f"{YELLOW}  ! Could not save configuration: {error}{RESET}")
        self.driver.persistence_errors.clear()
        return result

    def _finish(self, label: str) -> None:
        print(f"\n{BOLD}{'=' * 60}{RESET}")
        print(f"{BOLD}  {label}{RESET}")
        print(f"{DIM}  State trace: {' -> '.join(self.driver.state_machine.get_state_trace())}{RESET}")
        print(f"{DIM}  Record: {self.driver.record.known_fields()}{RESET}")
        print(f"{BOLD}{'=' * 60}{RESET}")

    async def run_scenario(self, scenario: str) -> None:
        """Auto-play a pre-scripted scenario for demo purposes."""
        steps = self.SCENARIOS.get(scenario)
        if not steps:
            print(f"{RED}Unknown scenario: {scenario}{RESET}")
            return

        self._banner(f"Scenario: {scenario}")
        self.agent_say(self.driver.messages[0].content)
        for step in steps:
            if self.driver.is_complete:
                break
            print(f"\n{BLUE}[You] {RESET}{step}")
            await self._process_input(step)
        self._finish(f"Scenario '{scenario}' complete.")

    async def run_async(self) -> None:
        self._banner("Console")
        print(f"{BOLD}  Type /export to write a spreadsheet, 'quit' to exit{RESET}\n")
        self.agent_say(self.driver.messages[0].content)

        while True:
            user_input = (await asyncio.to_thread(input, f"\n{BLUE}[You] {RESET}")).strip()
            if not user_input:
                continue
            if user_input.lower() in ("quit", "exit", "q"):
                print(f"\n{DIM}Session ended.{RESET}")
                break
            if user_input == "/export":
                self._export()
                continue
            if len(user_input) > self.MAX_INPUT_LENGTH:
                self.agent_say("That was quite long. Could you keep it brief for me?")
                continue
            await self._process_input(user_input)

        self._finish("Conversation ended.")

    def run(self) -> None:
        asyncio.run(self.run_async())


def main() -> None:
    parser = argparse.ArgumentParser(description="Warehouse wizard console")
    parser.add_argument(
        "--scenario",
        choices=sorted(ConsoleSession.SCENARIOS),
        default=None,
        help="Auto-play a pre-scripted scenario instead of interactive mode",
    )
    args = parser.parse_args()

    session = ConsoleSession()
    if args.scenario:
        asyncio.run(session.run_scenario(args.scenario))
    else:
        session.run()


if __name__ == "__main__":
    main()
