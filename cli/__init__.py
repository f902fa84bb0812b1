"""SSH CAのバックグラウンド処理(Celery)を収めるパッケージ."""
