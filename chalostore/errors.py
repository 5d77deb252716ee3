"""
ChaloStore — エラー定義

在庫切れと決済拒否は例外ではなく CheckoutRejected として返す。
ここに定義するのは呼び出し側に伝播させる本物の失敗だけ。
"""


class StoreError(Exception):
    """ChaloStore の全エラーの基底クラス"""


class ValidationError(StoreError):
    """入力が業務ルールに違反している（違反はすべてまとめて保持する）"""

    def __init__(self, errors: list[str]):
        super().__init__("; ".join(errors))
        self.errors = list(errors)


class NotFoundError(StoreError):
    """指定された商品・注文が存在しない"""


class DependencyFailure(StoreError):
    """メール送信・イベント発行などの外部依存が失敗した"""
