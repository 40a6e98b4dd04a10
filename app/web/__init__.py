"""
Web 패키지 - 페이지 목적지 및 서버측 가드
"""
