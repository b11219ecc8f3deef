import hashlib

import pytest
from pollvote.models.exceptions import AuthenticationFailedError
from pollvote.models.poll_models import PollCreationContext, PollVoteUpdate
from structlog.testing import capture_logs


def upper_sha256(text: str) -> str:
    return hashlib.sha256(text.encode()).hexdigest().upper()


@pytest.mark.asyncio
async def test_end_to_end_two_options(service, poll, seal_vote):
    vote = seal_vote(poll, "222@x", ["A", "B"])

    selected = await service.decrypt_selected_options(poll, vote, ["A", "B", "C"])

    assert selected == ["A", "B"]


@pytest.mark.asyncio
async def test_decrypt_option_hashes_in_protocol_order(service, poll, seal_vote):
    vote = seal_vote(poll, "222@x", ["B", "A"])

    hashes = await service.decrypt_option_hashes(poll, vote)

    assert hashes == [upper_sha256("B"), upper_sha256("A")]


@pytest.mark.asyncio
async def test_retracted_vote_selects_nothing(service, poll, seal_vote):
    vote = seal_vote(poll, "222@x", [])

    result = await service.decrypt_vote(poll, vote, ["A", "B"])

    assert result.option_hashes == [""]
    assert result.selected_options == []
    assert result.is_retracted


@pytest.mark.asyncio
async def test_decrypt_vote_result(service, poll, seal_vote):
    vote = seal_vote(poll, "222@x", ["Yes"])

    result = await service.decrypt_vote(poll, vote, ["Yes", "No"])

    assert result.vote_msg_sender == "222@x"
    assert result.option_hashes == [upper_sha256("Yes")]
    assert result.selected_options == ["Yes"]
    assert not result.is_retracted


@pytest.mark.asyncio
async def test_vote_from_other_sender_fails(service, poll, seal_vote):
    vote = seal_vote(poll, "222@x", ["A"])
    forged = PollVoteUpdate(
        vote_msg_sender="333@x", enc_payload=vote.enc_payload, enc_iv=vote.enc_iv
    )

    with pytest.raises(AuthenticationFailedError):
        await service.decrypt_selected_options(poll, forged, ["A"])


@pytest.mark.asyncio
async def test_vote_for_other_poll_fails(service, poll, seal_vote):
    vote = seal_vote(poll, "222@x", ["A"])
    other_poll = PollCreationContext(
        poll_msg_id="P2", poll_msg_sender=poll.poll_msg_sender, enc_key=poll.enc_key
    )

    with pytest.raises(AuthenticationFailedError):
        await service.decrypt_selected_options(other_poll, vote, ["A"])


@pytest.mark.asyncio
async def test_derived_key_is_zeroed_after_use(service, poll, seal_vote, monkeypatch):
    vote = seal_vote(poll, "222@x", ["A"])
    derived_keys: list[bytearray] = []
    original_derive = service.key_deriver.derive

    async def recording_derive(*args):
        key = await original_derive(*args)
        derived_keys.append(key)
        return key

    monkeypatch.setattr(service.key_deriver, "derive", recording_derive)

    await service.decrypt_option_hashes(poll, vote)

    assert len(derived_keys) == 1
    assert derived_keys[0] == bytearray(32)


@pytest.mark.asyncio
async def test_derived_key_is_zeroed_on_failure(service, poll, seal_vote, monkeypatch):
    vote = seal_vote(poll, "222@x", ["A"])
    tampered = PollVoteUpdate(
        vote_msg_sender=vote.vote_msg_sender,
        enc_payload=bytes([vote.enc_payload[0] ^ 1]) + vote.enc_payload[1:],
        enc_iv=vote.enc_iv,
    )
    derived_keys: list[bytearray] = []
    original_derive = service.key_deriver.derive

    async def recording_derive(*args):
        key = await original_derive(*args)
        derived_keys.append(key)
        return key

    monkeypatch.setattr(service.key_deriver, "derive", recording_derive)

    with pytest.raises(AuthenticationFailedError):
        await service.decrypt_option_hashes(poll, tampered)

    assert derived_keys[0] == bytearray(32)


@pytest.mark.asyncio
async def test_decrypt_votes_skips_unprocessable(service, poll, seal_vote):
    good_one = seal_vote(poll, "222@x", ["A"])
    good_two = seal_vote(poll, "444@x", ["B", "C"])
    bad = seal_vote(poll, "333@x", ["A"])
    bad = PollVoteUpdate(
        vote_msg_sender=bad.vote_msg_sender,
        enc_payload=bad.enc_payload[:-1] + bytes([bad.enc_payload[-1] ^ 0xFF]),
        enc_iv=bad.enc_iv,
    )

    with capture_logs() as logs:
        results = await service.decrypt_votes(
            poll, [good_one, bad, good_two], ["A", "B", "C"]
        )

    assert [r.vote_msg_sender for r in results] == ["222@x", "444@x"]
    assert [r.selected_options for r in results] == [["A"], ["B", "C"]]

    skipped = [log for log in logs if log["event"] == "poll_vote.skipped"]
    assert len(skipped) == 1
    assert skipped[0]["vote_msg_sender"] == "333@x"
    assert skipped[0]["error_type"] == "AuthenticationFailedError"

    summary = [log for log in logs if log["event"] == "poll_vote.batch_decrypted"]
    assert summary[0]["decrypted"] == 2
    assert summary[0]["skipped"] == 1


@pytest.mark.asyncio
async def test_logs_never_carry_key_material(service, poll, seal_vote):
    vote = seal_vote(poll, "222@x", ["A"])

    with capture_logs() as logs:
        await service.decrypt_votes(poll, [vote], ["A"])

    rendered = repr(logs)
    assert poll.enc_key.hex() not in rendered
    assert vote.enc_payload.hex() not in rendered
    assert "enc_key" not in rendered
