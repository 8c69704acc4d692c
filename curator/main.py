import argparse
import asyncio
import json
import sys
from curator.services.conversation import conversation_service
from curator.services.logger import logger
from curator.workflows.pipeline import pipeline


async def run_curation(email: str, interests: str = "", existing: bool = False):
    """Run one curation pass and wait for background persistence."""
    try:
        summary = await pipeline.run(email, interests, is_new_user=not existing)
    finally:
        await pipeline.writer.drain()
    print(json.dumps(summary, indent=2))


async def chat():
    """Interactive interest chat; curates once the conversation completes."""
    reply = conversation_service.start_session()
    print(reply.response)
    loop = asyncio.get_running_loop()
    while True:
        message = (await loop.run_in_executor(None, input, "> ")).strip()
        if not message:
            continue
        if message.lower() in ("quit", "exit"):
            return
        reply = await conversation_service.handle_message(reply.session_id, message)
        print(reply.response)
        if reply.conversation_complete:
            print(f"\nInterests: {reply.user_interests}")
            email = (await loop.run_in_executor(None, input, "Email for your digest: ")).strip()
            if email:
                await run_curation(email, reply.user_interests)
            return


def main():
    parser = argparse.ArgumentParser(description="Personalized news curation")
    subparsers = parser.add_subparsers(dest="command", help="Commands")

    run_parser = subparsers.add_parser("run", help="Curate a digest for one user")
    run_parser.add_argument("--email", required=True, help="Recipient email address")
    run_parser.add_argument("--interests", default="", help="Free-text interest description")
    run_parser.add_argument("--existing", action="store_true", help="Reuse stored sections and interests")

    subparsers.add_parser("chat", help="Describe your interests in a chat, then curate")

    args = parser.parse_args()

    try:
        if args.command == "run":
            asyncio.run(run_curation(args.email, args.interests, args.existing))
        elif args.command == "chat":
            asyncio.run(chat())
        else:
            parser.print_help()
    except KeyboardInterrupt:
        logger.info("Stopped by user")
    except Exception as e:
        logger.exception(f"Fatal error: {e}")
        sys.exit(1)

if __name__ == "__main__":
    main()
