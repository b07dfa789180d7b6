"""
API 평가 스크립트

사용법:
    python evaluate_api.py --endpoint http://localhost:8000 --images test_images/

설명:
    - 지정된 디렉토리의 작업 공간 사진들을 /api/analyze 로 전송
    - 처리 시간, 성공률, 파싱 경로, 인체공학 상태 분포를 측정
    - 결과를 evaluation_report.md에 저장
"""

import requests
import os
import time
import argparse
from collections import Counter
from typing import List, Dict, Any
import statistics

MIME_BY_EXTENSION = {
    '.jpg': 'image/jpeg',
    '.jpeg': 'image/jpeg',
    '.png': 'image/png',
    '.webp': 'image/webp',
}


class APIEvaluator:
    def __init__(self, endpoint: str, workspace_vibe: str = None,
                 color_preference: str = None, budget_range: str = None, timeout: float = 120):
        self.endpoint = endpoint.rstrip('/')
        self.api_url = f"{self.endpoint}/api/analyze"
        self.timeout = timeout
        self.form = {
            key: value for key, value in {
                'workspace_vibe': workspace_vibe,
                'color_preference': color_preference,
                'budget_range': budget_range,
            }.items() if value
        }

    def evaluate_single_image(self, image_path: str) -> Dict[str, Any]:
        """단일 이미지 평가"""
        print(f"\nAnalyzing: {image_path}")
        mime_type = MIME_BY_EXTENSION.get(os.path.splitext(image_path)[1].lower(), 'image/jpeg')

        with open(image_path, 'rb') as f:
            files = {'photo': (os.path.basename(image_path), f, mime_type)}

            start_time = time.time()
            try:
                response = requests.post(self.api_url, files=files, data=self.form, timeout=self.timeout)
                elapsed_time = time.time() - start_time

                if response.status_code == 200:
                    data = response.json()
                    return {
                        'image': os.path.basename(image_path),
                        'success': True,
                        'processing_time': elapsed_time,
                        'api_processing_time': data.get('processing_time', 0) / 1000,
                        'parse_kind': data.get('parse_kind', 'unknown'),
                        'insights': data.get('ergonomic_insights', []),
                        'recommendation_count': len(data.get('recommendations', [])),
                        'palette_mood': (data.get('color_palette') or {}).get('mood'),
                        'summary': data.get('summary', ''),
                        'error': None
                    }
                else:
                    return {
                        'image': os.path.basename(image_path),
                        'success': False,
                        'processing_time': elapsed_time,
                        'error': f"HTTP {response.status_code}: {response.text}"
                    }
            except requests.RequestException as e:
                elapsed_time = time.time() - start_time
                return {
                    'image': os.path.basename(image_path),
                    'success': False,
                    'processing_time': elapsed_time,
                    'error': str(e)
                }

    def evaluate_directory(self, images_dir: str) -> List[Dict[str, Any]]:
        """디렉토리의 모든 이미지 평가"""
        image_files = sorted(
            os.path.join(images_dir, f)
            for f in os.listdir(images_dir)
            if os.path.splitext(f)[1].lower() in MIME_BY_EXTENSION
        )

        print(f"Found {len(image_files)} images in {images_dir}")

        results = []
        for image_path in image_files:
            results.append(self.evaluate_single_image(image_path))
            time.sleep(1)  # 서버 부하 방지

        return results

    def generate_report(self, results: List[Dict[str, Any]], output_file: str = "evaluation_report.md"):
        """평가 보고서 생성"""
        total_tests = len(results)
        if total_tests == 0:
            print("평가할 이미지가 없습니다.")
            return

        successful = [r for r in results if r['success']]
        failed_tests = total_tests - len(successful)

        processing_times = [r['processing_time'] for r in successful]
        api_times = [r['api_processing_time'] for r in successful]
        parse_kinds = Counter(r['parse_kind'] for r in successful)
        status_counts = Counter(
            (insight['category'], insight['status'])
            for r in successful for insight in r['insights']
        )

        with open(output_file, 'w', encoding='utf-8') as f:
            f.write("# 작업 공간 분석 API 평가 보고서\n\n")

            # 1. 전체 요약
            f.write("## 1. 전체 요약\n\n")
            f.write(f"- 테스트 날짜: {time.strftime('%Y-%m-%d %H:%M:%S')}\n")
            f.write(f"- API 엔드포인트: {self.api_url}\n")
            f.write(f"- 총 테스트 수: {total_tests}\n")
            f.write(f"- 성공: {len(successful)} ({len(successful)/total_tests*100:.1f}%)\n")
            f.write(f"- 실패: {failed_tests} ({failed_tests/total_tests*100:.1f}%)\n\n")

            # 2. 성능 지표
            f.write("## 2. 성능 지표\n\n")
            if processing_times:
                f.write("### 처리 시간 (총 요청-응답 시간)\n\n")
                f.write(f"- 평균: {statistics.mean(processing_times):.2f}초\n")
                f.write(f"- 최소: {min(processing_times):.2f}초\n")
                f.write(f"- 최대: {max(processing_times):.2f}초\n")
                f.write(f"- 중앙값: {statistics.median(processing_times):.2f}초\n\n")

            if api_times:
                f.write("### API 내부 처리 시간\n\n")
                f.write(f"- 평균: {statistics.mean(api_times):.2f}초\n")
                f.write(f"- 최대: {max(api_times):.2f}초\n\n")

            # 3. 파싱 경로
            f.write("## 3. 응답 파싱 경로\n\n")
            f.write("| 경로 | 건수 |\n")
            f.write("|------|------|\n")
            for kind, count in sorted(parse_kinds.items()):
                f.write(f"| {kind} | {count} |\n")
            f.write("\n")

            # 4. 인체공학 상태 분포
            f.write("## 4. 인체공학 상태 분포\n\n")
            f.write("| 카테고리 | good | needs-improvement | poor |\n")
            f.write("|----------|------|-------------------|------|\n")
            for category in sorted({c for c, _ in status_counts}):
                f.write(
                    f"| {category} | {status_counts[(category, 'good')]} "
                    f"| {status_counts[(category, 'needs-improvement')]} "
                    f"| {status_counts[(category, 'poor')]} |\n"
                )
            f.write("\n")

            # 5. 개별 테스트 결과
            f.write("## 5. 개별 테스트 결과\n\n")
            for idx, result in enumerate(results, 1):
                f.write(f"### 테스트 {idx}: {result['image']}\n\n")
                f.write(f"- 상태: {'성공' if result['success'] else '실패'}\n")
                f.write(f"- 처리 시간: {result['processing_time']:.2f}초\n")

                if result['success']:
                    f.write(f"- 파싱 경로: {result['parse_kind']}\n")
                    f.write(f"- 추천 상품 수: {result['recommendation_count']}\n")
                    f.write(f"- 팔레트 분위기: {result['palette_mood']}\n")
                    f.write(f"- 요약: {result['summary']}\n\n")
                else:
                    f.write(f"- 오류: {result.get('error', 'Unknown error')}\n\n")

            # 6. 결론
            f.write("## 6. 결론 및 권장사항\n\n")
            if len(successful) / total_tests >= 0.95:
                f.write("전반적으로 안정성 요구사항을 충족합니다.\n\n")
            else:
                f.write("일부 요구사항을 충족하지 못했습니다. 개선이 필요합니다.\n\n")

            if parse_kinds.get('heuristic') or parse_kinds.get('empty'):
                f.write("- 일부 응답이 JSON 형식이 아니었습니다. 프롬프트 개선이 필요합니다.\n")

            if failed_tests > 0:
                f.write(f"- {failed_tests}개의 요청이 실패했습니다. 에러 핸들링 강화가 필요합니다.\n")

        print(f"\n평가 보고서가 {output_file}에 저장되었습니다.")


def main():
    parser = argparse.ArgumentParser(description='작업 공간 분석 API 평가')
    parser.add_argument('--endpoint', default='http://localhost:8000', help='API 엔드포인트 URL')
    parser.add_argument('--images', default='test_images', help='테스트 이미지 디렉토리')
    parser.add_argument('--output', default='evaluation_report.md', help='평가 보고서 출력 파일')
    parser.add_argument('--vibe', default=None, help='workspace-vibe 응답 코드 (예: focus-minimal)')
    parser.add_argument('--colors', default=None, help='color-preference 응답 코드 (예: neutral-tones)')
    parser.add_argument('--budget', default=None, help='budget-range 응답 코드 (예: budget-mid)')

    args = parser.parse_args()

    # 이미지 디렉토리 확인
    if not os.path.exists(args.images):
        print(f"오류: 이미지 디렉토리 '{args.images}'를 찾을 수 없습니다.")
        print(f"테스트 이미지를 {args.images} 디렉토리에 넣어주세요.")
        return

    evaluator = APIEvaluator(args.endpoint, args.vibe, args.colors, args.budget)
    results = evaluator.evaluate_directory(args.images)

    evaluator.generate_report(results, args.output)

    successful = sum(1 for r in results if r['success'])
    print(f"\n총 {len(results)}개 이미지 평가 완료")
    print(f"성공: {successful}, 실패: {len(results) - successful}")


if __name__ == "__main__":
    main()
