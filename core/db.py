from flask_sqlalchemy import SQLAlchemy

# SSH CAのキーバリューストレージが利用するデータベース。
# コミット後もエンティティを参照できるよう期限切れにしない。
db = SQLAlchemy(session_options={"expire_on_commit": False})

__all__ = ["db"]
