"""
撤销/重做管理器 - 线性快照栈

规则：
1. record: 回放来源（撤销/重做自身触发）直接忽略；否则与游标处快照不同才记录，
   记录前丢弃游标之后的分支，记录后只保留最近 limit 条
2. undo/redo: 到达边界返回 None（不是错误），否则移动游标并返回快照副本，
   调用方以 MutationSource.REPLAY 写回图层集合
3. 非空时游标始终在 [0, len-1]

测试要点：
- test_undo_redo_roundtrip: 撤销N次再重做N次恢复原状态
- test_limit_evicts_oldest: 第51次记录挤掉最旧快照
- test_replay_not_recorded: 回放变更不入栈
"""

from __future__ import annotations

from collections.abc import Iterable

from ..config import get_config
from ..models import HistoryEntry, Layer, MutationSource


class HistoryManager:
    """撤销/重做管理器"""

    def __init__(self, limit: int | None = None):
        self.limit = get_config().history.limit if limit is None else limit
        if self.limit < 1:
            raise ValueError(f"历史上限必须 >= 1: {self.limit}")
        self._entries: list[HistoryEntry] = []
        self._cursor = 0
        self._sequence = 0

    def __len__(self) -> int:
        return len(self._entries)

    @property
    def cursor(self) -> int:
        return self._cursor

    @property
    def can_undo(self) -> bool:
        return bool(self._entries) and self._cursor > 0

    @property
    def can_redo(self) -> bool:
        return bool(self._entries) and self._cursor < len(self._entries) - 1

    def current(self) -> HistoryEntry | None:
        if not self._entries:
            return None
        return self._entries[self._cursor]

    def reset(self, layers: Iterable[Layer]) -> None:
        """清空历史并以当前状态作为唯一快照（会话开始/工程恢复）"""
        self._entries = [self._snapshot(layers)]
        self._cursor = 0

    def record(
        self,
        layers: Iterable[Layer],
        source: MutationSource = MutationSource.USER,
    ) -> bool:
        """记录快照，返回是否实际入栈"""
        if source == MutationSource.REPLAY:
            return False

        layers = tuple(layers)
        current = self.current()
        if current is not None and current.layers == layers:
            return False

        # 丢弃游标之后的分支
        del self._entries[self._cursor + 1:]
        self._entries.append(self._snapshot(layers))

        overflow = len(self._entries) - self.limit
        if overflow > 0:
            del self._entries[:overflow]

        self._cursor = len(self._entries) - 1
        return True

    def undo(self) -> list[Layer] | None:
        if not self.can_undo:
            return None
        self._cursor -= 1
        return self._restore(self._entries[self._cursor])

    def redo(self) -> list[Layer] | None:
        if not self.can_redo:
            return None
        self._cursor += 1
        return self._restore(self._entries[self._cursor])

    def _snapshot(self, layers: Iterable[Layer]) -> HistoryEntry:
        self._sequence += 1
        return HistoryEntry(
            sequence=self._sequence,
            layers=tuple(layer.model_copy(deep=True) for layer in layers),
        )

    @staticmethod
    def _restore(entry: HistoryEntry) -> list[Layer]:
        return [layer.model_copy(deep=True) for layer in entry.layers]
