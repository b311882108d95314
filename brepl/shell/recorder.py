"""
CommandRecorder — 評価に成功した行のトランスクリプト記録

ホストの評価フックとして登録し、エラーにならなかったトップレベルの行だけを
入力順にトランスクリプトへ追加する。
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from .state import Transcript

if TYPE_CHECKING:
    from .host import Evaluation

logger = logging.getLogger(__name__)


class CommandRecorder:
    """評価フック: 成功した行をトランスクリプトに追加する。"""

    def __init__(self, transcript: Transcript) -> None:
        self._transcript = transcript

    def __call__(self, evaluation: Evaluation) -> None:
        if evaluation.failed:
            logger.debug("エラーになった行は記録しません: %s", evaluation.source.strip())
            return

        command = evaluation.source.strip()
        if not command:
            return

        self._transcript.append(command, awaited=evaluation.awaited)
        logger.debug("行を記録しました: %s", command)
