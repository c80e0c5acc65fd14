from __future__ import annotations

import unicodedata

# ァ(U+30A1)..ヶ(U+30F6) -> ぁ(U+3041)..
_KATAKANA_TO_HIRAGANA = {cp: cp - 0x60 for cp in range(0x30A1, 0x30F7)}


def ja_sort_key(value: object) -> tuple[str, str]:
    """日本語の表示名を並べるためのソートキー。

    全角/半角の揺れ(NFKC)・カタカナ/ひらがな・大文字/小文字を同一視し、
    最後に元の文字列で順序を確定させる。
    """

    text = "" if value is None else str(value)
    folded = unicodedata.normalize("NFKC", text).translate(_KATAKANA_TO_HIRAGANA).casefold()
    return folded, text
