# pyright: standard
import pytest
from pytest_mock import MockerFixture

from patchvault.delta import BinaryDeltaCodec
from patchvault.store import BaseSelector, ChainReconstructor, PatchStore, VersionCache
from tests.helpers import insert_tagged_patch, text_block

ALPHA = text_block("alpha").encode()
BETA = text_block("beta").encode()
GAMMA = text_block("gamma").encode()


@pytest.fixture
def codec() -> BinaryDeltaCodec:
    return BinaryDeltaCodec()


@pytest.fixture
def selector(patch_store: PatchStore, codec: BinaryDeltaCodec) -> BaseSelector:
    patch_store.insert_document("d", "Doc", 0)
    reconstructor = ChainReconstructor(patch_store, codec, VersionCache())
    return BaseSelector(patch_store, codec, reconstructor)


def test_no_history_encodes_against_empty_base(selector: BaseSelector, codec: BinaryDeltaCodec) -> None:
    # WHEN selecting a base for a document without versions
    tag, delta = selector.select_base("d", b"hello", 100)

    # THEN tag 0 against empty content is used
    assert tag == 0
    assert delta == codec.encode(0, b"", b"hello", True)
    assert codec.decode(b"", delta) == b"hello"


def test_older_similar_version_wins(patch_store: PatchStore, selector: BaseSelector, codec: BinaryDeltaCodec) -> None:
    # GIVEN history ALPHA (t=100) then BETA (t=200)
    insert_tagged_patch(patch_store, "d", "p1", 100, 0, b"", ALPHA)
    insert_tagged_patch(patch_store, "d", "p2", 200, 0, ALPHA, BETA)

    # WHEN committing a small edit of ALPHA
    new_content = ALPHA + b"one more line\n"
    tag, delta = selector.select_base("d", new_content, 300)

    # THEN the version two back (tag 1) is chosen
    assert tag == 1
    assert codec.get_tag(delta) == 1
    assert codec.decode(ALPHA, delta) == new_content
    # AND it is no larger than encoding against the immediately preceding version
    assert len(delta) <= len(codec.encode(0, BETA, new_content, True))


def test_ties_prefer_the_lowest_tag(patch_store: PatchStore, selector: BaseSelector) -> None:
    # GIVEN history ALPHA, BETA, ALPHA: tags 0 and 2 hold identical content
    insert_tagged_patch(patch_store, "d", "p1", 100, 0, b"", ALPHA)
    insert_tagged_patch(patch_store, "d", "p2", 200, 0, ALPHA, BETA)
    insert_tagged_patch(patch_store, "d", "p3", 300, 1, ALPHA, ALPHA)

    # WHEN selecting for an edit of ALPHA
    tag, _ = selector.select_base("d", ALPHA + b"tail\n", 400)

    # THEN the most recent of the equally good candidates wins
    assert tag == 0


def test_window_limits_candidates(
    patch_store: PatchStore, selector: BaseSelector, mocker: MockerFixture
) -> None:
    # GIVEN ALPHA followed by two unrelated versions
    insert_tagged_patch(patch_store, "d", "p1", 100, 0, b"", ALPHA)
    insert_tagged_patch(patch_store, "d", "p2", 200, 0, ALPHA, BETA)
    insert_tagged_patch(patch_store, "d", "p3", 300, 0, BETA, GAMMA)
    reconstruct_spy = mocker.spy(selector.reconstructor, "reconstruct")

    # WHEN the window only covers the two most recent versions
    tag, _ = selector.select_base("d", ALPHA + b"tail\n", 400, window=2)

    # THEN ALPHA is out of reach and only two candidates were materialized
    assert tag in (0, 1)
    assert [c.args[1] for c in reconstruct_spy.call_args_list] == [300, 200]


def test_candidates_are_strictly_before_timestamp(
    patch_store: PatchStore, selector: BaseSelector, mocker: MockerFixture
) -> None:
    insert_tagged_patch(patch_store, "d", "p1", 100, 0, b"", ALPHA)
    insert_tagged_patch(patch_store, "d", "p2", 200, 0, ALPHA, BETA)
    reconstruct_spy = mocker.spy(selector.reconstructor, "reconstruct")

    _ = selector.select_base("d", GAMMA, 200)

    assert [c.args[1] for c in reconstruct_spy.call_args_list] == [100]


def test_rejects_empty_window(selector: BaseSelector) -> None:
    with pytest.raises(ValueError):
        _ = selector.select_base("d", b"x", 100, window=0)
