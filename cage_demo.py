# cage_demo.py
"""
케이지 기반 메쉬 변형 데모

이 스크립트는 다음을 시연합니다:
1. PyVista 예제 모델 또는 외부 파일 로드
2. 케이지 파일 로드 또는 OBB 공간 분할로 케이지 자동 생성
3. MVC 가중치 계산
4. 키보드로 케이지 정점을 선택/이동하며 모델 변형 확인

키 조작:
    a / u / t       : 전체 케이지 정점 선택 / 해제 / 반전
    방향키           : 선택된 정점을 X / Y 방향으로 이동
    PageUp/PageDown : 선택된 정점을 Z 방향으로 이동
    w / c           : 가중치 계산 / 삭제
    g               : 현재 모델로 케이지 다시 생성
    q / e           : 장면을 Y축 기준으로 회전

사용법:
    uv run python cage_demo.py --model dumbbell --generate-cage
    uv run python cage_demo.py --file armadillo.obj --cage armadillo_cage.obj
    uv run python cage_demo.py --model bunny --generate-cage --export-cage bunny_cage.ply --no-window
    uv run python cage_demo.py --model cow --export-obb cow_obb.ply --no-window
"""

import argparse
import logging

from wgpu import gpu
import wgpu.backends.auto
from wgpu.gui.auto import WgpuCanvas, run

# 로컬 모듈
from _config import CageToolConfig
from _logging_config import get_logger, setup_logging
from _mesh_loader import (
    load_mesh,
    load_example_mesh,
    get_mesh_info,
    save_mesh,
)
from _obb import fit_obb, obb_mesh
from _renderer import CageRenderer
from _session import CageSession

logger = get_logger(__name__)

# 키 -> 이동 방향 (config.delta_move 배)
MOVE_KEYS = {
    "ArrowLeft": (-1.0, 0.0, 0.0),
    "ArrowRight": (1.0, 0.0, 0.0),
    "ArrowUp": (0.0, 1.0, 0.0),
    "ArrowDown": (0.0, -1.0, 0.0),
    "PageUp": (0.0, 0.0, 1.0),
    "PageDown": (0.0, 0.0, -1.0),
}

ROTATE_STEP_DEG = 15.0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description='케이지 기반 메쉬 변형 데모 (MVC)')
    parser.add_argument('--model', type=str, default='dumbbell',
                        help='PyVista 예제 모델 (bunny, armadillo, cow, sphere, cube, cylinder, dumbbell)')
    parser.add_argument('--file', type=str, default=None,
                        help='로드할 모델 파일 경로 (--model 대신)')
    parser.add_argument('--cage', type=str, default=None,
                        help='로드할 케이지 파일 경로')
    parser.add_argument('--generate-cage', action='store_true',
                        help='모델로부터 케이지 자동 생성')
    parser.add_argument('--resolution', dest='voxel_resolution', type=int, default=None,
                        help='케이지 생성 복셀 해상도 (가장 긴 OBB 축 기준)')
    parser.add_argument('--max-depth', dest='max_depth', type=int, default=None,
                        help='케이지 트리 최대 재귀 깊이')
    parser.add_argument('--delta-move', dest='delta_move', type=float, default=None,
                        help='키 입력 한 번에 케이지 정점을 움직이는 거리')
    parser.add_argument('--export-cage', type=str, default=None,
                        help='케이지를 저장할 파일 경로 (.ply, .stl, .vtk, .vtp)')
    parser.add_argument('--export-obb', type=str, default=None,
                        help='모델 OBB 를 상자 메쉬로 저장할 파일 경로')
    parser.add_argument('--info', action='store_true',
                        help='메쉬 정보만 출력하고 종료')
    parser.add_argument('--no-window', action='store_true',
                        help='렌더링 창을 열지 않음 (케이지 생성/저장만)')
    parser.add_argument('--log-level', type=str, default='INFO',
                        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
                        help='로그 레벨')
    return parser


def make_key_handler(session: CageSession, renderer: CageRenderer, canvas: WgpuCanvas):
    """키 입력을 세션 조작으로 연결하는 이벤트 핸들러를 만듭니다."""

    def n_cage_verts() -> int:
        return session.cage.n_vertices if session.cage is not None else 0

    def on_key_down(event):
        key = event["key"]

        if key in MOVE_KEYS:
            session.translate_selected_cage_verts(MOVE_KEYS[key], scaled=True)
        elif key == "a":
            session.select_cage_verts(0, n_cage_verts())
        elif key == "u":
            session.unselect_cage_verts(0, n_cage_verts())
        elif key == "t":
            session.toggle_cage_verts(0, n_cage_verts())
        elif key == "w":
            if session.compute_weights():
                logger.info("✓ 가중치 계산 완료")
        elif key == "c":
            session.clear_weights()
            logger.info("가중치 삭제")
        elif key == "g":
            if session.generate_cage():
                renderer.set_cage(session.cage)
        elif key in ("q", "e"):
            renderer.rotation_deg[1] += ROTATE_STEP_DEG if key == "e" else -ROTATE_STEP_DEG
        else:
            return
        canvas.request_draw()

    return on_key_down


def main():
    args = build_parser().parse_args()
    setup_logging(getattr(logging, args.log_level))

    logger.info("=" * 60)
    logger.info("케이지 기반 메쉬 변형 데모")
    logger.info("=" * 60)

    # 1. 모델 로드
    if args.file:
        logger.info(f"[1] 모델 파일 로드: {args.file}")
        model = load_mesh(args.file)
    else:
        logger.info(f"[1] 예제 모델 로드: {args.model}")
        model = load_example_mesh(args.model)

    print(get_mesh_info(model))
    if args.info:
        return

    config = CageToolConfig.from_args(args)
    session = CageSession(config, verbose=True)
    session.load_model(model)

    # 2. 케이지 로드 또는 생성
    if args.cage:
        logger.info(f"[2] 케이지 파일 로드: {args.cage}")
        session.load_cage(load_mesh(args.cage, ignore_normals=True, ignore_uvs=True))
    elif args.generate_cage:
        logger.info(f"[2] 케이지 자동 생성 (해상도: {config.voxel_resolution}, 최대 깊이: {config.max_depth})")
        if session.generate_cage():
            print(session.last_generation)
    else:
        logger.info("[2] 케이지 없음 (g 키로 생성 가능)")

    if args.export_cage:
        if session.cage is None:
            logger.warning("⚠ 저장할 케이지가 없습니다.")
        else:
            save_mesh(session.cage, args.export_cage)

    if args.export_obb:
        # 케이지를 생성했다면 점 집합으로 다시 맞춘 OBB, 아니면 모델 OBB
        if session.last_generation is not None:
            obb = session.last_generation.refit_obb
        else:
            obb = fit_obb(model.positions)
        print(obb)
        save_mesh(obb_mesh(obb, name=f"{model.name}_obb"), args.export_obb)

    if args.no_window:
        return

    # 3. WebGPU 렌더링
    logger.info("[3] WebGPU 렌더링 시작")
    logger.info("    a/u/t: 선택, 방향키/PageUp/PageDown: 이동, w: 가중치, c: 가중치 삭제, g: 케이지 생성")
    logger.info("    창을 닫으면 종료됩니다.")

    canvas = WgpuCanvas(title=f"Cage Demo - {model.name}")
    adapter = gpu.request_adapter(canvas=canvas, power_preference="high-performance")
    if adapter is None:
        raise RuntimeError("GPU 어댑터를 찾을 수 없습니다.")

    device = adapter.request_device()
    context = canvas.get_context()
    texture_format = context.get_preferred_format(adapter)
    context.configure(device=device, format=texture_format)

    renderer = CageRenderer(device, texture_format, session.model, session.cage)
    session.listener = renderer

    canvas.add_event_handler(make_key_handler(session, renderer, canvas), "key_down")

    def draw_frame():
        renderer.draw_frame(canvas)

    canvas.request_draw(draw_frame)
    run()


if __name__ == "__main__":
    main()
