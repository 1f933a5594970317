import difflib
from typing import List, Tuple


class UnifiedDiffGenerator:
    """Unified Diff形式への変換を担当するクラス

    このクラスはファイル内容の差分をUnified Diff形式に変換します。
    Azure DevOps APIやその他の外部依存を持たず、純粋な変換ロジックのみを担当します。

    変更行だけを出力し、変更のない行（コンテキスト行）は含めません。
    """

    def generate_file_diff(
        self,
        original_content: str,
        modified_content: str,
        file_path: str,
        original_label: str = "a",
        modified_label: str = "b"
    ) -> str:
        """1ファイルのUnified Diffを生成

        Args:
            original_content: 変更前のファイル内容（空文字列の場合は新規ファイル）
            modified_content: 変更後のファイル内容
            file_path: ファイルパス（先頭の/は除く）
            original_label: 変更前のラベル（デフォルト: "a"）
            modified_label: 変更後のラベル（デフォルト: "b"）

        Returns:
            Unified Diff形式の文字列。差分がない場合はヘッダー2行のみ。

        Example:
            >>> generator = UnifiedDiffGenerator()
            >>> original = "line1\\nline2\\nline3\\n"
            >>> modified = "line1\\nline2 modified\\nline3\\n"
            >>> print(generator.generate_file_diff(original, modified, "test.py"), end="")
            --- a/test.py
            +++ b/test.py
            @@ -2,1 +2,1 @@
            -line2
            +line2 modified
        """
        # ファイルパスの正規化（先頭の/を除去）
        normalized_path = file_path
        if normalized_path.startswith('/'):
            normalized_path = normalized_path[1:]

        original_lines = self._split_lines(original_content)
        modified_lines = self._split_lines(modified_content)

        output = [
            f"--- {original_label}/{normalized_path}",
            f"+++ {modified_label}/{normalized_path}",
        ]

        for old_range, new_range, body in self._hunks(original_lines, modified_lines):
            output.append(f"@@ -{old_range[0]},{old_range[1]} +{new_range[0]},{new_range[1]} @@")
            output.extend(body)

        return "\n".join(output) + "\n"

    @staticmethod
    def _split_lines(content: str) -> List[str]:
        """改行（\\n または \\r\\n）だけで行に分割

        \\f や単独の \\r などは行の一部として扱い、行番号をずらさない。
        """
        if not content:
            return []
        lines = content.split("\n")
        if lines[-1] == "":
            lines.pop()
        return [line[:-1] if line.endswith("\r") else line for line in lines]

    def _hunks(self, original_lines: List[str], modified_lines: List[str]):
        """連続する変更行ごとに (旧範囲, 新範囲, 本文) を返す

        範囲は (開始行, 行数)。行数が0の側は、変更位置の直前の行番号を開始行とする
        （空ファイルなら0）。
        """
        matcher = difflib.SequenceMatcher(None, original_lines, modified_lines, autojunk=False)

        for group in matcher.get_grouped_opcodes(0):
            body = []
            for tag, i1, i2, j1, j2 in group:
                if tag == "equal":
                    continue
                # replaceは削除行を先に、追加行を後に並べる
                body.extend(f"-{line}" for line in original_lines[i1:i2])
                body.extend(f"+{line}" for line in modified_lines[j1:j2])

            first, last = group[0], group[-1]
            old_range = self._range(first[1], last[2])
            new_range = self._range(first[3], last[4])
            yield old_range, new_range, body

    @staticmethod
    def _range(start: int, stop: int) -> Tuple[int, int]:
        count = stop - start
        if count == 0:
            return start, 0
        return start + 1, count
