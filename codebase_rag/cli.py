"""
Command Line Interface

Usage:
    codebase-rag train --exclude-dirs bin,assets --exclude-extensions .log
    codebase-rag chat --language English
    codebase-rag              # asks which action to perform
"""

import argparse
import sys
from typing import Callable, List, Optional

from .config import DEFAULT_LANGUAGE, load_settings
from .exceptions import CodebaseRAGError, InvalidConfig
from .indexing import parse_list
from .rag_system import CodebaseRAG
from .session import ChatSession

ASK_PROMPT = ": What do you want to ask? "
INVALID_QUESTION = ": Please enter a valid question."


def chat_loop(
    session: ChatSession,
    input_fn: Callable[[str], str] = input,
    print_fn: Callable[[str], None] = print
) -> None:
    """
    Run the interactive question loop until the user types exit.

    Blank input is rejected here and never reaches the session. A failed
    turn is reported and the loop carries on.
    """
    while not session.is_terminated:
        try:
            question = input_fn(ASK_PROMPT)
        except EOFError:
            break

        if not question.strip():
            print_fn(INVALID_QUESTION)
            continue

        try:
            answer = session.submit(question)
        except CodebaseRAGError as e:
            print_fn(f": Could not answer that question ({e}). Please try again.")
            continue

        if answer is not None:
            print_fn(f": {answer}")


def _ask_action(input_fn: Callable[[str], str]) -> Optional[str]:
    """Ask until the user picks chat or train; None if input ends first."""
    while True:
        try:
            choice = input_fn(": What action do you want to perform? [chat/train] ").strip().lower()
        except EOFError:
            return None
        if choice in ("chat", "c"):
            return "chat"
        if choice in ("train", "training", "t"):
            return "train"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="codebase-rag",
        description="Ask questions about the codebase in the current directory"
    )
    parser.add_argument(
        "--root",
        type=str,
        default=None,
        help="Working root to index and chat about (default: current directory)"
    )
    parser.add_argument(
        "--quiet",
        action="store_true",
        help="Do not print progress messages"
    )
    subparsers = parser.add_subparsers(dest="action")

    train = subparsers.add_parser("train", help="Build the vector store for the working root")
    train.add_argument(
        "--exclude-dirs",
        type=str,
        default=None,
        help="Comma-separated folders to exclude (Example: node_modules, bin, assets)"
    )
    train.add_argument(
        "--exclude-extensions",
        type=str,
        default=None,
        help="Comma-separated extensions to exclude (Example: .jpg, .png, .gif, .svg)"
    )
    train.add_argument(
        "--exclude-files",
        type=str,
        default=None,
        help="Comma-separated files to exclude (Example: package-lock.json, .env)"
    )

    chat = subparsers.add_parser("chat", help="Chat with the trained codebase")
    chat.add_argument(
        "--language",
        type=str,
        default=None,
        help=f"Language for answers (default: {DEFAULT_LANGUAGE})"
    )

    return parser


def main(
    argv: Optional[List[str]] = None,
    input_fn: Callable[[str], str] = input,
    print_fn: Callable[[str], None] = print
) -> int:
    """Main entry point."""
    args = build_parser().parse_args(argv)

    try:
        settings = load_settings(root=args.root, verbose=not args.quiet)
        system = CodebaseRAG(settings)
    except InvalidConfig as e:
        print_fn(str(e))
        return 1

    action = args.action or _ask_action(input_fn)
    if action is None:
        return 0

    try:
        if action == "train":
            if args.action is None:
                exclude_dirs = input_fn(
                    ": Which folders do you want to exclude from training (Example: node_modules, bin, assets)? "
                )
                exclude_extensions = input_fn(
                    ": Which extensions do you want to exclude (Example: .jpg, .png, .gif, .svg)? "
                )
                exclude_files = input_fn(
                    ": Do you want to exclude any files (Example: package-lock.json, .env)? "
                )
            else:
                exclude_dirs = args.exclude_dirs
                exclude_extensions = args.exclude_extensions
                exclude_files = args.exclude_files

            stats = system.train(
                exclude_dirs=parse_list(exclude_dirs),
                exclude_extensions=parse_list(exclude_extensions),
                exclude_files=parse_list(exclude_files)
            )
            print_fn(f"Indexed {stats['total_chunks']} chunks from {stats['total_files']} files")
        else:
            if args.action is None:
                language = input_fn(f": What language do you want to use (default: {DEFAULT_LANGUAGE})? ")
            else:
                language = args.language
            session = system.chat(language)
            chat_loop(session, input_fn=input_fn, print_fn=print_fn)
    except EOFError:
        # Input closed while answering the setup questions
        return 0
    except CodebaseRAGError as e:
        print_fn(str(e))
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
