"""
CBT (Computer Based Test) ujian sekolah
問題作成・受験者管理・時間制限付き受験・自動採点
"""
