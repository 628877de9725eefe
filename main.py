#!/usr/bin/env python3
"""Virtual psychologist CLI: chat with the bot and inspect its memory tiers."""

import argparse
import logging
import sys
from datetime import date

from config.settings import Settings
from llm.errors import GenerationFailure
from orchestrator import ConversationOrchestrator
from providers.messaging import DeliveryFailure, TelegramGateway


def print_memory(orchestrator: ConversationOrchestrator, conversation_id: str, tier: str):
    """Print one memory tier for a conversation."""
    if tier == "history":
        for turn in orchestrator.get_history(conversation_id):
            print(f"[{turn.timestamp:%Y-%m-%d %H:%M}] USER: {turn.user_text}")
            print(f"{'':18} BOT:  {turn.assistant_text}\n")

    elif tier == "summaries":
        for category, summaries in orchestrator.get_category_summaries(conversation_id).items():
            print(f"{category}:")
            for summary in summaries:
                print(f"  - ({summary.timestamp:%Y-%m-%d}, turn {summary.turn_count_at_generation}) "
                      f"{summary.text}")

    elif tier == "clinical":
        for note in orchestrator.get_clinical_history(conversation_id):
            print("=" * 60)
            print(f"SESSION {note.session_number} (turn {note.turn_count_at_generation}, "
                  f"{note.timestamp:%Y-%m-%d})")
            print("=" * 60)
            print(note.text + "\n")

    elif tier == "diary":
        for entry in orchestrator.get_diary(conversation_id):
            print(f"--- {entry.date.isoformat()} ({entry.turn_count} turns) ---")
            print(entry.text + "\n")

    elif tier == "overall":
        summary = orchestrator.get_or_generate_overall_summary(conversation_id)
        if summary is None:
            print("Nothing to summarize yet (no diary entries or clinical notes).")
        else:
            print(f"Generated {summary.generated_at:%Y-%m-%d %H:%M}\n")
            print(summary.text)


def deliver_to_telegram(
    orchestrator: ConversationOrchestrator,
    settings: Settings,
    conversation_id: str,
    chat_id: str,
    text: str
):
    """Answer one message and send the reply to a Telegram chat."""
    gateway = TelegramGateway(
        token=settings.telegram_token,
        max_length=settings.max_message_length
    )
    gateway.send_typing(chat_id)
    gateway.send_message(chat_id, orchestrator.respond(conversation_id, text) or "")


def chat_loop(orchestrator: ConversationOrchestrator, conversation_id: str):
    """Interactive chat until EOF or /quit."""
    print(orchestrator.welcome() + "\n")
    while True:
        try:
            text = input("> ").strip()
        except EOFError:
            break
        if text in ("/quit", "/exit"):
            break
        if not text:
            continue
        print("\n" + orchestrator.respond(conversation_id, text) + "\n")


def main():
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Virtual psychologist with layered long-term memory"
    )
    parser.add_argument(
        "--conversation-id",
        "-c",
        type=str,
        default="cli",
        help="Conversation to talk in or inspect (default: cli)"
    )
    parser.add_argument(
        "--message",
        "-m",
        type=str,
        help="Send a single message instead of starting an interactive chat"
    )
    parser.add_argument(
        "--show",
        choices=["history", "summaries", "clinical", "diary", "overall"],
        help="Print a memory tier and exit"
    )
    parser.add_argument(
        "--regenerate-overall",
        action="store_true",
        help="Rebuild the overall summary before printing it"
    )
    parser.add_argument(
        "--regenerate-diary",
        type=date.fromisoformat,
        metavar="YYYY-MM-DD",
        help="Rewrite the diary entry for a date"
    )
    parser.add_argument(
        "--telegram-chat",
        type=str,
        metavar="CHAT_ID",
        help="Deliver the --message reply to this Telegram chat (needs TELEGRAM_TOKEN)"
    )
    parser.add_argument(
        "--db-path",
        type=str,
        help="SQLite file for durable memory (default: MEMORY_DB_PATH or in-process only)"
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable verbose output"
    )

    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s"
    )

    settings = Settings(db_path=args.db_path, verbose=args.verbose)
    if args.telegram_chat and not (args.message and settings.telegram_token):
        parser.error("--telegram-chat needs --message and TELEGRAM_TOKEN")

    orchestrator = ConversationOrchestrator(settings=settings)

    try:
        if args.regenerate_overall:
            orchestrator.regenerate_overall_summary(args.conversation_id)
            print_memory(orchestrator, args.conversation_id, "overall")
        elif args.regenerate_diary:
            entry = orchestrator.regenerate_diary_entry(args.conversation_id, args.regenerate_diary)
            print(entry.text if entry else "No turns available for that date.")
        elif args.show:
            print_memory(orchestrator, args.conversation_id, args.show)
        elif args.message and args.telegram_chat:
            deliver_to_telegram(
                orchestrator, settings, args.conversation_id, args.telegram_chat, args.message
            )
        elif args.message:
            print(orchestrator.on_turn(args.conversation_id, args.message) or "")
        else:
            chat_loop(orchestrator, args.conversation_id)
    except GenerationFailure as e:
        print(f"Generation failed: {e}", file=sys.stderr)
        sys.exit(1)
    except DeliveryFailure as e:
        print(f"Delivery failed: {e}", file=sys.stderr)
        sys.exit(1)
    finally:
        # Let pending summaries, notes and diary entries land before exiting
        orchestrator.drain(timeout=settings.generation_timeout * 3)
        orchestrator.shutdown()


if __name__ == "__main__":
    main()
