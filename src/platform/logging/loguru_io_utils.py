from inspect import getfile, getsourcelines
from os.path import basename
from time import time
from typing import Any, Callable

from src.platform.logging.loguru_io_config import (
    MASK,
    SENSITIVE_KEYWORDS,
    call_depth_var,
    chain_start_time_var,
)


_TRUNCATE_LIMIT = 500


def get_chain_start_time() -> float:
    if not (start_time := chain_start_time_var.get()):
        start_time = time()
        chain_start_time_var.set(start_time)
    return start_time


def build_call_target_func_path(func: Callable[..., Any]) -> str:
    target = getattr(func, '__func__', func)
    try:
        lineno = getsourcelines(target)[1]
        filename = basename(getfile(target))
    except (OSError, TypeError):
        return getattr(func, '__qualname__', repr(func))
    return f'{filename}::{func.__qualname__}:{lineno}'


def reset_call_depth() -> None:
    layer = call_depth_var.get() - 1
    call_depth_var.set(layer)
    if not layer:
        chain_start_time_var.set(0)


def should_mask_keyword(keyword: Any, value: Any) -> Any:
    return MASK if keyword in SENSITIVE_KEYWORDS else value


def truncate_content(data: Any) -> Any:
    text = str(data)
    if len(text) <= _TRUNCATE_LIMIT:
        return data
    return f'{text[:_TRUNCATE_LIMIT]}...(+{len(text) - _TRUNCATE_LIMIT} chars)'
