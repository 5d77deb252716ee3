"""
ChaloStore — 在庫管理とチェックアウトを行うストアバックエンド
"""
