from __future__ import annotations

from pathlib import Path

from bitcoin.core.script import OP_0, OP_ENDIF, OP_IF, CScript

from ortty import explore
from ortty.explore import (
    BACK,
    MAIN_VIEW,
    OPTIONS,
    OPTIONS_VIEW,
    QUIT,
    RECENT_BLOCKS,
    RECENT_BLOCKS_VIEW,
    Explorer,
    ExploreOptions,
    block_view,
    prompt_choice,
    transition,
)
from ortty.filter import InscriptionFilter


def _block(height: int) -> dict:
    def witness(content_type: bytes, payload: bytes) -> list[str]:
        script = CScript([OP_0, OP_IF, b"ord", b"\x01", content_type, b"", payload, OP_ENDIF])
        return [bytes(script).hex(), "c1" + "03" * 32]

    tx = {
        "txid": "0d" * 32,
        "vin": [
            {"txinwitness": witness(b"text/plain", b"plain words")},
            {"txinwitness": witness(b"application/json", b'{"p":"brc-20","op":"mint"}')},
        ],
    }
    return {"hash": "ee" * 32, "height": height, "tx": [tx]}


class StubRPC:
    def __init__(self, best: int = 150) -> None:
        self.best = best
        self.requested: list[int] = []

    def getblockcount(self) -> int:
        return self.best

    def getblock_by_height(self, height: int) -> dict:
        self.requested.append(height)
        return _block(height)


def _scripted(*answers: str):
    pending = list(answers)

    def fake_input(_: str = "") -> str:
        return pending.pop(0)

    return fake_input


def test_transition_from_main_menu() -> None:
    assert transition((MAIN_VIEW,), RECENT_BLOCKS) == (MAIN_VIEW, RECENT_BLOCKS_VIEW)
    assert transition((MAIN_VIEW,), OPTIONS) == (MAIN_VIEW, OPTIONS_VIEW)
    assert transition((MAIN_VIEW,), QUIT) == ()
    assert transition((MAIN_VIEW,), "unexpected") == (MAIN_VIEW,)


def test_transition_from_recent_blocks() -> None:
    stack = (MAIN_VIEW, RECENT_BLOCKS_VIEW)

    assert transition(stack, 840000) == (MAIN_VIEW, block_view(840000))
    assert transition(stack, BACK) == (MAIN_VIEW,)
    assert transition(stack, True) == stack


def test_block_and_options_views_are_dismissed() -> None:
    assert transition((MAIN_VIEW, block_view(5)), None) == (MAIN_VIEW,)
    assert transition((MAIN_VIEW, OPTIONS_VIEW), None) == (MAIN_VIEW,)
    assert transition((), RECENT_BLOCKS) == ()


def test_transition_does_not_mutate_input() -> None:
    stack = (MAIN_VIEW,)
    transition(stack, RECENT_BLOCKS)
    assert stack == (MAIN_VIEW,)


def test_prompt_choice_retries_invalid_input() -> None:
    output: list[str] = []

    picked = prompt_choice("Pick", ["a", "b"], input_func=_scripted("x", "9", "2"), output=output.append)

    assert picked == "b"
    assert "Invalid selection, please enter a number." in output
    assert "Selection out of range, please try again." in output


def test_recent_heights_cover_last_hundred_blocks() -> None:
    explorer = Explorer(StubRPC(best=150), input_func=_scripted(), output=lambda _: None)

    heights = explorer.recent_heights()

    assert heights[0] == 150
    assert heights[-1] == 50
    assert len(heights) == 101
    assert Explorer(StubRPC(best=3), output=lambda _: None).recent_heights() == [3, 2, 1, 0]


def test_explorer_session_views_filtered_block() -> None:
    rpc = StubRPC(best=150)
    output: list[str] = []
    explorer = Explorer(
        rpc,
        options=ExploreOptions(filters=frozenset({InscriptionFilter.BRC20})),
        input_func=_scripted("1", "1", "3"),
        output=output.append,
        raw_json=True,
    )

    explorer.run()

    assert rpc.requested == [150]
    assert '{"p":"brc-20","op":"mint"}' in output
    assert "plain words" not in output


def test_explorer_options_update_filters_and_extract(tmp_path: Path) -> None:
    rpc = StubRPC(best=10)
    output: list[str] = []
    explorer = Explorer(
        rpc,
        options=ExploreOptions(extract_dir=tmp_path),
        input_func=_scripted(
            "2", "text, bogus", "n", "n",
            "2", "json", "y", "n",
            "1", "1",
            "3",
        ),
        output=output.append,
    )

    explorer.run()

    assert explorer.options.filters == frozenset({InscriptionFilter.JSON})
    assert explorer.options.extract is True
    assert explorer.options.web is False
    assert any("Unknown filter type" in line for line in output)
    assert sorted(p.name for p in tmp_path.iterdir()) == [f"{'0d' * 32}i1.json"]


def test_explorer_reports_empty_block(monkeypatch) -> None:
    output: list[str] = []
    monkeypatch.setattr(explore, "scan_block_json", lambda *_args, **_kwargs: [])
    explorer = Explorer(StubRPC(), output=output.append)

    explorer.show_block(7)

    assert output == ["No matching inscriptions in block 7."]
