#!/usr/bin/env python3
"""
CBT ujian sekolah
起動スクリプト

使用方法:
    python run.py [--port PORT] [--host HOST] [--debug] [--no-seed]

例:
    python run.py
    python run.py --port 8080
    python run.py --host 0.0.0.0 --port 5000 --debug
"""

import argparse
import sys

from cbt.core.config import Config
from app import app, load_initial_questions


def main():
    """アプリケーションを起動"""
    parser = argparse.ArgumentParser(description='CBT ujian sekolah')
    parser.add_argument('--host', default=Config.HOST, help=f'ホストアドレス (デフォルト: {Config.HOST})')
    parser.add_argument('--port', type=int, default=Config.PORT, help=f'ポート番号 (デフォルト: {Config.PORT})')
    parser.add_argument('--debug', action='store_true', help='デバッグモードで起動')
    parser.add_argument('--no-seed', action='store_true', help='サンプル問題を投入しない')

    args = parser.parse_args()

    if not args.no_seed:
        load_initial_questions(app)

    print("=" * 60)
    print("📝 CBT ujian sekolah")
    print("=" * 60)
    print(f"📡 ホスト: {args.host}")
    print(f"🔌 ポート: {args.port}")
    print(f"🐛 デバッグモード: {'有効' if args.debug else '無効'}")
    print(f"💾 データベース: {Config.DATABASE_TYPE.upper()}")
    print(f"🌐 URL: http://{args.host}:{args.port}")
    print("=" * 60)
    print("🛑 停止するには Ctrl+C を押してください")
    print("=" * 60)

    try:
        app.run(
            host=args.host,
            port=args.port,
            debug=args.debug,
            use_reloader=args.debug
        )
    except KeyboardInterrupt:
        print("\n\n🛑 アプリケーションを停止しました")
        sys.exit(0)
    except Exception as e:
        print(f"\n❌ エラーが発生しました: {e}")
        sys.exit(1)


if __name__ == '__main__':
    main()
