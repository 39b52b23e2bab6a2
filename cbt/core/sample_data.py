"""
初期サンプル問題（問題が1件もない場合に投入）
"""

SAMPLE_QUESTIONS = [
    {
        'id': 'q1',
        'type': 'multiple_choice',
        'subject': 'IPS',
        'text': 'Ibu kota negara Indonesia yang baru bernama...',
        'points': 10,
        'options': ['Jakarta', 'Nusantara', 'Bandung', 'Surabaya'],
        'correctOptions': [1],
    },
    {
        'id': 'q2',
        'type': 'multi_select',
        'subject': 'IPA',
        'text': 'Manakah dari berikut ini yang merupakan hewan mamalia? (Pilih lebih dari satu)',
        'points': 10,
        'options': ['Ayam', 'Kucing', 'Sapi', 'Buaya'],
        'correctOptions': [1, 2],
    },
    {
        'id': 'q3',
        'type': 'ordering',
        'subject': 'IPA',
        'text': 'Urutkan tahapan metamorfosis kupu-kupu dengan benar.',
        'points': 15,
        'orderItems': ['Telur', 'Ulat (Larva)', 'Kepompong (Pupa)', 'Kupu-kupu'],
    },
    {
        'id': 'q4',
        'type': 'matching',
        'subject': 'IPS',
        'text': 'Pasangkan nama provinsi dengan ibu kotanya.',
        'points': 15,
        'matches': [
            {'left': 'Jawa Barat', 'right': 'Bandung'},
            {'left': 'Jawa Timur', 'right': 'Surabaya'},
            {'left': 'Bali', 'right': 'Denpasar'},
        ],
    },
    {
        'id': 'q5',
        'type': 'essay',
        'subject': 'Bahasa Indonesia',
        'text': 'Jelaskan mengapa kita harus menjaga kebersihan lingkungan!',
        'points': 20,
        'keywords': ['sehat', 'banjir', 'nyaman', 'penyakit'],
    },
    {
        'id': 'q6',
        'type': 'multiple_choice',
        'subject': 'Matematika',
        'text': 'Hasil dari 12 x 5 adalah...',
        'points': 10,
        'options': ['50', '55', '60', '65'],
        'correctOptions': [2],
    },
]


def seed_sample_questions(question_manager):
    """サンプル問題を保存し、保存件数を返す"""
    saved = 0
    for data in SAMPLE_QUESTIONS:
        question_manager.save_question(dict(data))
        saved += 1
    return saved
