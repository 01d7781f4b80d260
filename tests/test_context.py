import pytest

from archforge.context import RequestContext
from archforge.errors import MappingError, PipelineCancelled


def test_background_context_never_expires():
    ctx = RequestContext.background()
    ctx.check()
    assert ctx.remaining() is None
    assert not ctx.cancelled


def test_cancel_carries_reason():
    ctx = RequestContext.with_timeout(30)
    ctx.cancel("shutdown")
    assert ctx.cancelled
    with pytest.raises(PipelineCancelled) as excinfo:
        ctx.check()
    assert excinfo.value.reason == "shutdown"
    assert str(excinfo.value) == "pipeline cancelled: shutdown"


def test_zero_timeout_means_no_deadline():
    assert RequestContext.with_timeout(0).deadline is None


def test_stage_prefixes_stack_and_keep_error_class():
    err = MappingError("unsupported resource type 'x'", node_id="n1")
    err.in_stage("inner").in_stage("outer")
    assert str(err) == "outer: inner: unsupported resource type 'x'"
    assert err.message == "unsupported resource type 'x'"
    assert err.node_id == "n1"
