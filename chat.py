#!/usr/bin/env python3
"""
FieldOps Chat Interface
=======================

A conversational assistant over tasks, issues, visits, partners and SOPs.

Usage:
    python chat.py              # Interactive chat mode
    python chat.py --once "your message"  # Single message mode
    python chat.py --status     # Show system status

Examples:
    > Which partners are at risk?
    > Remind me to send the weekly report on Friday
    > Schedule a visit to Toko Makmur next Monday
    > How do I handle opcode 59?
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import Optional

sys.path.insert(0, str(Path(__file__).parent))

from fieldops.db.database import Database
from fieldops.errors import FieldOpsError
from fieldops.models.ai import ChatReply
from fieldops.rules.sla import sla_status
from fieldops.services.dashboard_service import dashboard_stats
from fieldops.services.workspace import build_workspace
from fieldops.utils.log import setup_logging


class ChatApp:
    """Interactive chat application over the field ops workspace."""

    def __init__(self, db_path: Optional[str] = None):
        db = Database(path=db_path) if db_path else None
        if db is not None:
            db.init()
        self.ws = build_workspace(db=db)
        self.session = self.ws.chat_session()
        self._pending: Optional[ChatReply] = None

    def show_status(self):
        sync = self.ws.coordinator
        stats = dashboard_stats(sync.tasks, sync.issues, sync.visits)
        cfg = self.session.gateway.config

        print("\n=== FieldOps Status ===\n")
        print(f"Backend: {sync.backend.name} ({'remote' if sync.is_remote else 'local'})")
        print(f"  Tasks today: {stats.tasks_today}")
        print(f"  SLA critical: {stats.sla_critical}")
        print(f"  Visits planned: {stats.visits_planned}")
        print(f"  Visits completed: {stats.visits_completed}")
        print("\nLLM:")
        print(f"  Enabled: {bool(cfg.api_key)}")
        print(f"  Model: {cfg.model_smart}")
        print()

    def show_overdue(self):
        overdue = self.ws.issues.overdue()
        if not overdue:
            print("\nNo issues past SLA.\n")
            return
        print()
        for issue in overdue:
            print(f"  {issue.awb:<18} {sla_status(issue.created_at, issue.status).label:<12} {issue.issue_type}")
        print()

    def connect(self):
        outcome = self.ws.coordinator.connect()
        print(f"\n{outcome.message}\n")

    def process_message(self, message: str) -> str:
        reply = self.session.send(message)
        if reply is None:
            return self.session.history[-1].content
        self._pending = reply if reply.action else None
        lines = [reply.reply]
        if reply.suggested_actions:
            lines.append("Suggestions: " + "; ".join(reply.suggested_actions))
        if reply.action:
            lines.append(f"Proposed action: {reply.action.type} (type /yes to apply)")
        return "\n".join(lines)

    def apply_pending(self):
        if self._pending is None:
            print("\nNothing to apply.\n")
            return
        outcome = self.session.apply_action(self._pending)
        self._pending = None
        if outcome is not None:
            print(f"\n{'OK' if outcome.ok else 'FAILED'}: {outcome.message}\n")

    def run_interactive(self):
        print("\n" + "=" * 60)
        print("FieldOps Chat")
        print("=" * 60)
        print("Type your message in natural language.")
        print("Commands: /status, /overdue, /connect, /yes, /clear, /help, /quit")
        print("=" * 60 + "\n")

        commands = {
            "/status": self.show_status,
            "/overdue": self.show_overdue,
            "/connect": self.connect,
            "/yes": self.apply_pending,
            "/clear": self.session.clear,
            "/help": self._show_help,
        }

        while True:
            try:
                user_input = input("You: ").strip()
                if not user_input:
                    continue

                if user_input.lower() in ("/quit", "/exit", "/q"):
                    print("Goodbye!")
                    break

                command = commands.get(user_input.lower())
                if command:
                    command()
                    continue

                print(f"\nAssistant: {self.process_message(user_input)}\n")

            except KeyboardInterrupt:
                print("\nGoodbye!")
                break
            except FieldOpsError as e:
                print(f"\nError: {e.message}\n")

    def _show_help(self):
        print("""
Ask in natural language:
  - "Which partners are at risk?"
  - "What issues are still open?"
  - "Remind me to follow up the hub sorting issue tomorrow"
  - "Schedule a visit to Toko Makmur next Monday"
  - "How do I handle opcode 59?"

Special Commands:
  /status  - Show dashboard counters and backend
  /overdue - List issues past the 24h SLA
  /connect - Switch to the configured remote backend
  /yes     - Apply the last proposed action
  /clear   - Forget the conversation
  /help    - Show this help
  /quit    - Exit chat
""")


def main():
    parser = argparse.ArgumentParser(
        description="FieldOps Chat Interface",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument("--once", "-o", type=str, help="Process a single message and exit")
    parser.add_argument("--status", "-s", action="store_true", help="Show system status")
    parser.add_argument("--db", type=str, default=None, help="Database path (default: FIELDOPS_DB_PATH)")
    args = parser.parse_args()

    setup_logging("WARNING")
    app = ChatApp(db_path=args.db)

    if args.status:
        app.show_status()
        return

    if args.once:
        print(app.process_message(args.once))
        return

    app.run_interactive()


if __name__ == "__main__":
    main()
