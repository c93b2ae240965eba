import numpy as np
import pytest

from burstcam.capture.buffer import FrameBuffer
from burstcam.capture.frame import Frame
from burstcam.errors import AlreadyConsumed, CapacityExceeded

from conftest import make_chunk


def _frame(index, dtype=np.uint8):
    return Frame(
        index=index,
        data=np.full((4, 6, 3), index, dtype=dtype),
        timestamp=1.0 + index * 0.5,
        chunk=make_chunk(index),
    )


def test_fills_to_target_then_rejects():
    buffer = FrameBuffer(3)
    for i in range(3):
        assert not buffer.is_complete()
        buffer.append(_frame(i))
    assert buffer.is_complete()
    assert len(buffer) == 3

    with pytest.raises(CapacityExceeded):
        buffer.append(_frame(3))
    assert len(buffer) == 3


def test_consume_transfers_frames_once():
    buffer = FrameBuffer(2)
    buffer.append(_frame(0))
    buffer.append(_frame(1))
    assert buffer.dtype == np.uint8
    assert buffer.frame_shape == (4, 6, 3)

    batch = buffer.consume()
    assert buffer.consumed
    assert len(buffer) == 0
    assert batch.complete
    assert [f.index for f in batch] == [0, 1]
    assert batch.stack().shape == (2, 4, 6, 3)
    np.testing.assert_allclose(batch.timestamps, [1.0, 1.5])

    with pytest.raises(AlreadyConsumed):
        buffer.consume()


def test_partial_buffer_can_be_consumed_but_not_refilled():
    buffer = FrameBuffer(5)
    buffer.append(_frame(0))

    batch = buffer.consume()
    assert len(batch) == 1
    assert not batch.complete

    with pytest.raises(AlreadyConsumed):
        buffer.append(_frame(1))
    with pytest.raises(AlreadyConsumed):
        buffer.consume()


def test_empty_buffer_peeks_are_none():
    buffer = FrameBuffer(1)
    assert buffer.dtype is None
    assert buffer.frame_shape is None


@pytest.mark.parametrize("target", [0, -3])
def test_target_must_be_positive(target):
    with pytest.raises(ValueError):
        FrameBuffer(target)
