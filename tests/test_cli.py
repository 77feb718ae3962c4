"""Tests for the command line entry point and the interactive loop."""

import pytest

from codebase_rag import cli
from codebase_rag.prompting import PromptAssembler
from codebase_rag.rag_system import CodebaseRAG
from codebase_rag.retrieval import VectorRetriever
from codebase_rag.session import ChatSession

from conftest import FakeEmbeddingClient, FakeGenerator, make_index


def _scripted(answers):
    it = iter(answers)
    prompts = []

    def input_fn(prompt):
        prompts.append(prompt)
        return next(it)

    input_fn.prompts = prompts
    return input_fn


def test_chat_loop_rejects_blank_and_exits(embedder, generator):
    session = ChatSession(
        VectorRetriever(make_index(embedder, ["function add(a,b){return a+b;}"]), embedder),
        PromptAssembler(),
        generator,
    )
    printed = []

    cli.chat_loop(session, input_fn=_scripted(["   ", "what does add do?", "exit"]), print_fn=printed.append)

    assert printed == [cli.INVALID_QUESTION, ": answer 1"]
    assert len(generator.requests) == 1
    assert session.is_terminated


def test_chat_loop_reports_failed_turn_and_continues(embedder, generator):
    session = ChatSession(VectorRetriever(make_index(embedder, ["x = 1"]), embedder), PromptAssembler(), generator)
    generator.fail_next = True
    printed = []

    cli.chat_loop(session, input_fn=_scripted(["first", "second", "EXIT"]), print_fn=printed.append)

    assert "Could not answer" in printed[0]
    assert printed[1] == ": answer 1"
    assert len(session.history) == 2


def test_chat_loop_stops_on_eof(embedder, generator):
    session = ChatSession(VectorRetriever(make_index(embedder, ["x = 1"]), embedder), PromptAssembler(), generator)

    def input_fn(prompt):
        raise EOFError

    cli.chat_loop(session, input_fn=input_fn, print_fn=lambda s: None)

    assert generator.requests == []


@pytest.fixture
def fake_system(monkeypatch):
    embedder = FakeEmbeddingClient()
    generator = FakeGenerator()
    monkeypatch.setattr(
        cli, "CodebaseRAG",
        lambda settings: CodebaseRAG(settings, embedding_client=embedder, generation_client=generator)
    )
    monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
    return embedder, generator


def test_missing_key_exits_with_error(tmp_path, monkeypatch):
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    monkeypatch.chdir(tmp_path)
    printed = []

    assert cli.main(["--root", str(tmp_path), "chat"], print_fn=printed.append) == 1
    assert "API key" in printed[0]


def test_chat_before_training(tmp_path, fake_system):
    printed = []

    code = cli.main(["--root", str(tmp_path), "--quiet", "chat"], print_fn=printed.append)

    assert code == 1
    assert "run the training first" in printed[0]


def test_train_then_chat(tmp_path, fake_system):
    _, generator = fake_system
    (tmp_path / "math.js").write_text("function add(a,b){return a+b;}")
    (tmp_path / "logo.png").write_bytes(b"\x89PNG\xff")
    (tmp_path / "notes.md").write_text("release notes")
    printed = []

    code = cli.main(
        ["--root", str(tmp_path), "--quiet", "train", "--exclude-extensions", "md"],
        print_fn=printed.append,
    )
    assert code == 0
    assert printed == ["Indexed 1 chunks from 1 files"]
    assert (tmp_path / "vectorStore").is_dir()

    printed.clear()
    code = cli.main(
        ["--root", str(tmp_path), "--quiet", "chat", "--language", "French"],
        input_fn=_scripted(["what does add do?", "exit"]),
        print_fn=printed.append,
    )
    assert code == 0
    assert printed == [": answer 1"]
    assert "function add(a,b){return a+b;}" in generator.requests[0].context
    assert generator.requests[0].language == "French"


def test_interactive_menu(tmp_path, fake_system):
    (tmp_path / "a.txt").write_text("hello world")
    printed = []

    code = cli.main(
        ["--root", str(tmp_path), "--quiet"],
        input_fn=_scripted(["train", "", "", ""]),
        print_fn=printed.append,
    )
    assert code == 0
    assert printed == ["Indexed 1 chunks from 1 files"]

    input_fn = _scripted(["chat", "", "hi", "exit"])
    code = cli.main(["--root", str(tmp_path), "--quiet"], input_fn=input_fn, print_fn=printed.append)

    assert code == 0
    assert printed[-1] == ": answer 1"


def test_menu_exits_cleanly_on_eof(tmp_path, fake_system):
    _, generator = fake_system
    printed = []

    def input_fn(prompt):
        raise EOFError

    code = cli.main(["--root", str(tmp_path), "--quiet"], input_fn=input_fn, print_fn=printed.append)

    assert code == 0
    assert printed == []
    assert not (tmp_path / "vectorStore").exists()


def test_eof_during_setup_questions(tmp_path, fake_system):
    answers = iter(["train", "node_modules"])

    def input_fn(prompt):
        try:
            return next(answers)
        except StopIteration:
            raise EOFError

    code = cli.main(["--root", str(tmp_path), "--quiet"], input_fn=input_fn, print_fn=lambda s: None)

    assert code == 0
    assert not (tmp_path / "vectorStore").exists()


def test_leftover_staging_directory_does_not_break_training(tmp_path, fake_system):
    (tmp_path / "a.txt").write_text("hello world")
    staging = tmp_path / "vectorStore.tmp"
    staging.mkdir()
    (staging / "index.faiss").write_bytes(b"\x00\xff\xfe half-written")
    printed = []

    code = cli.main(["--root", str(tmp_path), "--quiet", "train"], print_fn=printed.append)

    assert code == 0
    assert printed == ["Indexed 1 chunks from 1 files"]
