#!/usr/bin/env python3
"""Interactive terminal chat with the booking assistant.

Runs the conversation engine in-process against the configured ledger,
inventory service and model.

Usage:
    export OPENAI_API_KEY=your-key-here      # or ANTHROPIC_API_KEY for claude-* models
    export BOOKINGDESK_USER_ID=alice         # optional, defaults to "cli-user"
    bookingdesk-chat
"""

import os
import sys

from dotenv import load_dotenv

from bookingdesk.chains.llm import is_openai_model
from bookingdesk.core.engine import ConversationEngine
from bookingdesk.core.models import BookingDeskConfig
from bookingdesk.services import build_services
from bookingdesk.utils.exceptions import BookingDeskError
from bookingdesk.utils.logging import setup_logging

# ANSI colors
CYAN = "\033[96m"
GREEN = "\033[92m"
YELLOW = "\033[93m"
RED = "\033[91m"
MAGENTA = "\033[95m"
BOLD = "\033[1m"
DIM = "\033[2m"
RESET = "\033[0m"


class BookingDeskCLI:
    """Interactive CLI over a ConversationEngine."""

    def __init__(
        self,
        engine: ConversationEngine,
        user_id: str,
        title: str = "BookingDesk - Hotel Booking Assistant",
    ):
        """Initialize the CLI.

        Args:
            engine: Conversation engine handling the turns
            user_id: Identity the conversation is stored under
            title: Title to display in the CLI header
        """
        self.engine = engine
        self.user_id = user_id
        self.title = title

    def _print_header(self):
        """Print welcome header."""
        print(f"""
{CYAN}{BOLD}╔══════════════════════════════════════════════════════════════════╗
║              {self.title:^44}        ║
╚══════════════════════════════════════════════════════════════════╝{RESET}

{BOLD}Commands:{RESET}
  {GREEN}/new{RESET}      - Start a new conversation
  {GREEN}/history{RESET}  - Show the stored conversation
  {GREEN}/help{RESET}     - Show this help
  {GREEN}/quit{RESET}     - Exit

{DIM}Chatting as {self.user_id}. Just type your message.{RESET}
""")

    def _print_history(self):
        conversation = self.engine.get_conversation(self.user_id)
        if conversation is None or not conversation.messages:
            print(f"{DIM}(no messages yet){RESET}\n")
            return
        for turn in conversation.messages:
            if turn.role == "user":
                print(f"{CYAN}You:{RESET} {turn.content}")
            elif turn.role == "assistant":
                print(f"{MAGENTA}Assistant:{RESET} {turn.content}")
            else:
                print(f"{DIM}  → {turn.name}({turn.arguments}) = {turn.content}{RESET}")
        print()

    def send(self, user_input: str) -> str:
        """Send a message and get a response (for programmatic use)."""
        return self.engine.handle_turn(self.user_id, user_input).reply

    def run(self):
        """Run the interactive CLI."""
        self._print_header()

        while True:
            print(f"{CYAN}You:{RESET} ", end="", flush=True)
            try:
                user_input = input().strip()
            except (EOFError, KeyboardInterrupt):
                print("\nGoodbye!")
                break

            if not user_input:
                continue

            if user_input.startswith("/"):
                cmd = user_input[1:].lower().split()[0]

                if cmd in ("quit", "exit", "q"):
                    print("Goodbye!")
                    break

                elif cmd == "help":
                    self._print_header()

                elif cmd == "history":
                    self._print_history()

                elif cmd == "new":
                    self.engine.reset_conversation(self.user_id)
                    print(f"\n{GREEN}✓ Started new conversation{RESET}\n")

                else:
                    print(
                        f"{YELLOW}Unknown command: /{cmd}. "
                        f"Type /help for options.{RESET}\n"
                    )

            else:
                try:
                    response = self.send(user_input)
                    print(f"{MAGENTA}Assistant:{RESET} {response}\n")
                except BookingDeskError as e:
                    print(f"{RED}Error communicating with the assistant: {e}{RESET}\n")


def main():
    """Run the booking assistant CLI."""
    load_dotenv()
    config = BookingDeskConfig.from_env()
    setup_logging(config.log_level if config.log_file else "WARNING", config.log_file)

    key_name = "OPENAI_API_KEY" if is_openai_model(config.model) else "ANTHROPIC_API_KEY"
    if not os.environ.get(key_name):
        print(f"{RED}Error: {key_name} not set{RESET}")
        print(f"Run: export {key_name}=your-key-here\n")
        sys.exit(1)

    services = build_services(config)
    cli = BookingDeskCLI(
        engine=services.engine,
        user_id=os.environ.get("BOOKINGDESK_USER_ID", "cli-user"),
    )
    print(f"{GREEN}✓ Using model: {config.model}{RESET}")
    print(f"{GREEN}✓ Ledger: {config.database_url}{RESET}")
    try:
        cli.run()
    finally:
        services.close()


if __name__ == "__main__":
    main()
