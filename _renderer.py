# _renderer.py
"""
WebGPU 케이지 에디터 렌더러

- 모델: Phong 솔리드 + 검은색 와이어프레임
- 케이지: 정점 색상(선택 상태)으로 칠한 와이어프레임 + 포인트

정점 버퍼 레이아웃은 [pos(3), normal(3), colour(3)] = 9 floats 입니다.
CageRenderer 는 MeshChangeListener 로 동작하며, 변형/선택 변경 시 같은 크기의
정점 버퍼를 그대로 다시 씁니다 (크기가 다르면 갱신하지 않음).
"""
from dataclasses import dataclass
from typing import Optional

import numpy as np
import wgpu
from wgpu.gui.auto import WgpuCanvas

from _config import MODEL_DEFAULT_COLOUR
from _logging_config import get_logger
from _math import look_at, normal_matrix, perspective, pivot_matrix
from _mesh import MeshChange, MeshData, create_wireframe_indices, format_mesh_for_render

logger = get_logger(__name__)

FLOATS_PER_VERTEX = 9

# Python 코드의 _write_uniforms 와 일치해야 합니다.
_SCENE_UNIFORMS = """
struct SceneUniforms {
    model : mat4x4<f32>,
    view_proj : mat4x4<f32>,
    normal : mat4x4<f32>,
    light_dir : vec3<f32>,
    _pad0 : f32,
    camera_pos : vec3<f32>,
    black_override : f32,
};

@group(0) @binding(0) var<uniform> u_scene : SceneUniforms;
"""

# WebGPU 셰이더 (Solid)
SOLID_SHADER_SOURCE = _SCENE_UNIFORMS + """
struct VertexOut {
    @builtin(position) pos : vec4<f32>,
    @location(0) normal : vec3<f32>,
    @location(1) world_pos : vec3<f32>,
    @location(2) colour : vec3<f32>,
};

@vertex
fn vs_main(
    @location(0) position: vec3<f32>,
    @location(1) normal: vec3<f32>,
    @location(2) colour: vec3<f32>,
) -> VertexOut {
    var out : VertexOut;
    let world = u_scene.model * vec4<f32>(position, 1.0);
    out.world_pos = world.xyz;
    out.normal = (u_scene.normal * vec4<f32>(normal, 0.0)).xyz;
    out.colour = colour;
    out.pos = u_scene.view_proj * world;
    return out;
}

@fragment
fn fs_main(in: VertexOut) -> @location(0) vec4<f32> {
    // Phong Lighting Model (법선이 없는 정점은 ambient 만)
    let len_n = length(in.normal);
    let n = select(vec3<f32>(0.0), in.normal / len_n, len_n > 0.0);
    let l = normalize(u_scene.light_dir);
    let v = normalize(u_scene.camera_pos - in.world_pos);
    let h = normalize(l + v);

    let ambient = 0.15;
    let diff = max(dot(n, l), 0.0);
    let spec = pow(max(dot(n, h), 0.0), 32.0);

    let lit = in.colour * (ambient + diff * 0.7) + vec3<f32>(0.3) * spec;
    return vec4<f32>(lit, 1.0);
}
"""

# WebGPU 셰이더 (Wireframe / Points, 조명 없음)
FLAT_SHADER_SOURCE = _SCENE_UNIFORMS + """
struct VertexOut {
    @builtin(position) pos : vec4<f32>,
    @location(0) colour : vec3<f32>,
};

@vertex
fn vs_main(
    @location(0) position: vec3<f32>,
    @location(1) normal: vec3<f32>,
    @location(2) colour: vec3<f32>,
) -> VertexOut {
    var out : VertexOut;
    out.pos = u_scene.view_proj * (u_scene.model * vec4<f32>(position, 1.0));
    out.colour = colour;
    return out;
}

@fragment
fn fs_main(in: VertexOut) -> @location(0) vec4<f32> {
    if (u_scene.black_override > 0.5) {
        return vec4<f32>(0.0, 0.0, 0.0, 1.0);  // 검은색 와이어프레임
    }
    return vec4<f32>(in.colour, 1.0);
}
"""


@dataclass
class GpuMesh:
    """MeshData 하나에 대응하는 GPU 버퍼 묶음"""
    mesh: MeshData
    vertex_buffer: wgpu.GPUBuffer
    triangle_buffer: Optional[wgpu.GPUBuffer]
    n_triangle_indices: int
    wire_buffer: Optional[wgpu.GPUBuffer]
    n_wire_indices: int
    colours: Optional[np.ndarray] = None  # 고정 색상 (None 이면 mesh.colours 사용)

    def vertex_data(self) -> np.ndarray:
        return format_mesh_for_render(self.mesh, colours=self.colours)


class CageRenderer:
    """WebGPU를 사용하여 모델과 케이지를 렌더링하는 클래스."""

    UNIFORM_BYTE_SIZE = 256
    DEPTH_FORMAT = wgpu.TextureFormat.depth24plus

    def __init__(
        self,
        device: wgpu.GPUDevice,
        texture_format: wgpu.TextureFormat,
        model: Optional[MeshData] = None,
        cage: Optional[MeshData] = None,
    ):
        self.device = device
        self.texture_format = texture_format
        self.depth_texture = None

        # 장면 변환 (도 단위 회전)
        self.rotation_deg = [0.0, 0.0, 0.0]

        self.model_gpu: Optional[GpuMesh] = None
        self.cage_gpu: Optional[GpuMesh] = None
        self._center = np.zeros(3, dtype=np.float32)
        self._radius = 1.0

        # 1. 유니폼 버퍼 및 바인드 그룹 (2번: 모델 와이어프레임을 검은색으로)
        usage = wgpu.BufferUsage.UNIFORM | wgpu.BufferUsage.COPY_DST
        self.uniform_buffer = device.create_buffer(size=self.UNIFORM_BYTE_SIZE, usage=usage)
        self.uniform_buffer_wire = device.create_buffer(size=self.UNIFORM_BYTE_SIZE, usage=usage)
        self.bgl = device.create_bind_group_layout(
            entries=[{
                "binding": 0,
                "visibility": wgpu.ShaderStage.VERTEX | wgpu.ShaderStage.FRAGMENT,
                "buffer": {"type": wgpu.BufferBindingType.uniform},
            }]
        )
        self.bind_group = self._create_bind_group(self.uniform_buffer)
        self.bind_group_wire = self._create_bind_group(self.uniform_buffer_wire)

        # 2. 파이프라인
        self.solid_pipeline = self._create_pipeline(
            SOLID_SHADER_SOURCE, wgpu.PrimitiveTopology.triangle_list, depth_write=True
        )
        self.wireframe_pipeline = self._create_pipeline(
            FLAT_SHADER_SOURCE, wgpu.PrimitiveTopology.line_list, depth_write=False
        )
        self.point_pipeline = self._create_pipeline(
            FLAT_SHADER_SOURCE, wgpu.PrimitiveTopology.point_list, depth_write=False
        )

        # 3. 메쉬 버퍼
        self.set_model(model)
        self.set_cage(cage)

    # ------------------------------------------------------------------
    # 버퍼 관리
    # ------------------------------------------------------------------

    def _create_bind_group(self, buffer: wgpu.GPUBuffer) -> wgpu.GPUBindGroup:
        """단일 유니폼 버퍼를 위한 바인드 그룹을 생성합니다."""
        return self.device.create_bind_group(
            layout=self.bgl,
            entries=[{"binding": 0, "resource": {"buffer": buffer, "offset": 0, "size": buffer.size}}],
        )

    def _upload(self, mesh: MeshData, colours: Optional[np.ndarray] = None) -> GpuMesh:
        """메쉬의 정점 / 삼각형 / 와이어프레임 버퍼를 생성합니다."""
        vertex_data = format_mesh_for_render(mesh, colours=colours)
        vertex_buffer = self.device.create_buffer_with_data(
            data=vertex_data.tobytes(),
            usage=wgpu.BufferUsage.VERTEX | wgpu.BufferUsage.COPY_DST,
        )

        triangle_buffer = None
        tri_indices = mesh.triangles.astype(np.uint32).reshape(-1)
        if tri_indices.size:
            triangle_buffer = self.device.create_buffer_with_data(
                data=tri_indices.tobytes(), usage=wgpu.BufferUsage.INDEX
            )

        wire_buffer = None
        wire_indices = create_wireframe_indices(mesh.triangles)
        if wire_indices.size:
            wire_buffer = self.device.create_buffer_with_data(
                data=wire_indices.tobytes(), usage=wgpu.BufferUsage.INDEX
            )

        return GpuMesh(
            mesh=mesh,
            vertex_buffer=vertex_buffer,
            triangle_buffer=triangle_buffer,
            n_triangle_indices=int(tri_indices.size),
            wire_buffer=wire_buffer,
            n_wire_indices=int(wire_indices.size),
            colours=colours,
        )

    def set_model(self, model: Optional[MeshData]) -> None:
        if model is None or model.is_empty:
            self.model_gpu = None
        else:
            colours = np.tile(MODEL_DEFAULT_COLOUR, (model.n_vertices, 1))
            self.model_gpu = self._upload(model, colours=colours)
        self._fit_view()

    def set_cage(self, cage: Optional[MeshData]) -> None:
        self.cage_gpu = None if cage is None or cage.is_empty else self._upload(cage)
        self._fit_view()

    def _fit_view(self) -> None:
        """모델과 케이지를 모두 담도록 카메라 중심/거리를 맞춥니다."""
        meshes = [g.mesh for g in (self.model_gpu, self.cage_gpu) if g is not None]
        if not meshes:
            return
        points = np.vstack([m.positions for m in meshes])
        lo, hi = points.min(axis=0), points.max(axis=0)
        self._center = ((lo + hi) * 0.5).astype(np.float32)
        self._radius = max(float(np.linalg.norm(hi - lo)) * 0.5, 1e-3)

    def on_mesh_vertices_changed(self, mesh: MeshData, changed: MeshChange) -> None:
        """
        메쉬 정점 데이터가 바뀌면 같은 크기의 정점 버퍼를 다시 씁니다.

        현재 버퍼 레이아웃은 모든 속성을 한 버퍼에 interleave 하므로
        changed 플래그와 관계없이 버퍼 전체를 갱신합니다.
        """
        for gpu_mesh in (self.model_gpu, self.cage_gpu):
            if gpu_mesh is None or gpu_mesh.mesh is not mesh:
                continue
            data = gpu_mesh.vertex_data()
            if data.nbytes != gpu_mesh.vertex_buffer.size:
                logger.warning(f"⚠ '{mesh.name}' 정점 버퍼 크기가 달라 갱신하지 않습니다.")
                return
            self.device.queue.write_buffer(gpu_mesh.vertex_buffer, 0, data.tobytes())
            logger.debug(f"'{mesh.name}' 버퍼 갱신: {changed!r}")
            return

    # ------------------------------------------------------------------
    # 파이프라인
    # ------------------------------------------------------------------

    def _create_vertex_state(self, shader: wgpu.GPUShaderModule) -> dict:
        """모든 파이프라인에 공통으로 사용되는 Vertex State를 반환합니다."""
        return {
            "module": shader,
            "entry_point": "vs_main",
            "buffers": [{
                "array_stride": FLOATS_PER_VERTEX * 4,  # 3 pos + 3 normal + 3 colour
                "attributes": [
                    {"format": wgpu.VertexFormat.float32x3, "offset": 0, "shader_location": 0},   # position
                    {"format": wgpu.VertexFormat.float32x3, "offset": 12, "shader_location": 1},  # normal
                    {"format": wgpu.VertexFormat.float32x3, "offset": 24, "shader_location": 2},  # colour
                ],
                "step_mode": wgpu.VertexStepMode.vertex,
            }]
        }

    def _create_pipeline(
        self,
        shader_source: str,
        topology: wgpu.PrimitiveTopology,
        depth_write: bool,
    ) -> wgpu.GPURenderPipeline:
        """렌더링 파이프라인을 생성합니다. 깊이를 쓰지 않는 파이프라인은 솔리드 위에 그려집니다."""
        shader = self.device.create_shader_module(code=shader_source)
        keep = wgpu.StencilOperation.keep
        stencil = {"compare": wgpu.CompareFunction.always, "fail_op": keep, "depth_fail_op": keep, "pass_op": keep}
        return self.device.create_render_pipeline(
            layout=self.device.create_pipeline_layout(bind_group_layouts=[self.bgl]),
            vertex=self._create_vertex_state(shader),
            primitive={
                "topology": topology,
                "front_face": wgpu.FrontFace.ccw,
                "cull_mode": wgpu.CullMode.none,
            },
            depth_stencil={
                "format": self.DEPTH_FORMAT,
                "depth_write_enabled": depth_write,
                "depth_compare": wgpu.CompareFunction.less if depth_write else wgpu.CompareFunction.less_equal,
                "stencil_front": stencil,
                "stencil_back": stencil,
                "stencil_read_mask": 0xFFFFFFFF,
                "stencil_write_mask": 0xFFFFFFFF,
            },
            multisample={"count": 1, "mask": 0xFFFFFFFF, "alpha_to_coverage_enabled": False},
            fragment={
                "module": shader,
                "entry_point": "fs_main",
                "targets": [{"format": self.texture_format}],
            },
        )

    # ------------------------------------------------------------------
    # 프레임
    # ------------------------------------------------------------------

    def _write_uniforms(
        self, buffer: wgpu.GPUBuffer, width: int, height: int, model: np.ndarray, black_override: bool = False
    ) -> None:
        """장면 유니폼 데이터를 계산하여 버퍼에 씁니다."""
        aspect = width / max(height, 1)
        r = self._radius
        proj = perspective(np.radians(45.0), aspect, 0.01 * r, 20.0 * r)

        eye = self._center + np.array([0.0, 0.4 * r, 3.0 * r], dtype=np.float32)
        up = np.array([0.0, 1.0, 0.0], dtype=np.float32)
        view = look_at(eye, self._center, up)

        light_dir = np.array([0.3, 0.7, 0.55], dtype=np.float32)

        # WebGPU는 컬럼-주요(Column-Major) 행렬을 사용하므로 order="F" (Fortran)로 reshape
        data = np.concatenate([
            model.astype(np.float32).reshape(-1, order="F"),
            (proj @ view).astype(np.float32).reshape(-1, order="F"),
            normal_matrix(model).reshape(-1, order="F"),
            np.append(light_dir, 0.0).astype(np.float32),
            np.append(eye, 1.0 if black_override else 0.0).astype(np.float32),
        ])

        # 전체 유니폼 버퍼 크기에 맞게 패딩
        pad_floats = (self.UNIFORM_BYTE_SIZE // 4) - data.size
        if pad_floats > 0:
            data = np.pad(data, (0, pad_floats), mode="constant")

        self.device.queue.write_buffer(buffer, 0, data.tobytes())

    def _scene_matrix(self) -> np.ndarray:
        """장면 중심을 기준으로 회전하는 모델 행렬"""
        return pivot_matrix(self._center, self.rotation_deg)

    def draw_frame(self, canvas: WgpuCanvas) -> None:
        """프레임을 렌더링하고 유니폼을 업데이트합니다."""
        current_texture = canvas.get_context().get_current_texture()
        tex_width, tex_height, _ = current_texture.size

        # 깊이 텍스처 관리 (크기 변경 시 재생성)
        if self.depth_texture is None or self.depth_texture.size[0] != tex_width or self.depth_texture.size[1] != tex_height:
            self.depth_texture = self.device.create_texture(
                size=(tex_width, tex_height, 1),
                usage=wgpu.TextureUsage.RENDER_ATTACHMENT,
                format=self.DEPTH_FORMAT,
            )

        scene = self._scene_matrix()
        self._write_uniforms(self.uniform_buffer, tex_width, tex_height, scene)
        self._write_uniforms(self.uniform_buffer_wire, tex_width, tex_height, scene, black_override=True)

        color_attachment = {
            "view": current_texture.create_view(),
            "resolve_target": None,
            "load_op": wgpu.LoadOp.clear,
            "clear_value": (0.55, 0.6, 0.68, 1.0),
            "store_op": wgpu.StoreOp.store,
        }
        depth_attachment = {
            "view": self.depth_texture.create_view(),
            "depth_load_op": wgpu.LoadOp.clear,
            "depth_clear_value": 1.0,
            "depth_store_op": wgpu.StoreOp.store,
            "stencil_load_op": wgpu.LoadOp.clear,
            "stencil_store_op": wgpu.StoreOp.discard,
        }

        encoder = self.device.create_command_encoder()
        render_pass = encoder.begin_render_pass(
            color_attachments=[color_attachment],
            depth_stencil_attachment=depth_attachment,
        )
        render_pass.set_bind_group(0, self.bind_group, [], 0, 999_999)

        # 1. 모델: Solid + Wireframe
        model_gpu = self.model_gpu
        if model_gpu is not None and model_gpu.triangle_buffer is not None:
            render_pass.set_pipeline(self.solid_pipeline)
            render_pass.set_vertex_buffer(0, model_gpu.vertex_buffer, 0, model_gpu.vertex_buffer.size)
            render_pass.set_index_buffer(model_gpu.triangle_buffer, wgpu.IndexFormat.uint32, 0, model_gpu.triangle_buffer.size)
            render_pass.draw_indexed(model_gpu.n_triangle_indices, 1, 0, 0, 0)

            if model_gpu.wire_buffer is not None:
                render_pass.set_pipeline(self.wireframe_pipeline)
                render_pass.set_bind_group(0, self.bind_group_wire, [], 0, 999_999)
                render_pass.set_index_buffer(model_gpu.wire_buffer, wgpu.IndexFormat.uint32, 0, model_gpu.wire_buffer.size)
                render_pass.draw_indexed(model_gpu.n_wire_indices, 1, 0, 0, 0)
                render_pass.set_bind_group(0, self.bind_group, [], 0, 999_999)

        # 2. 케이지: Wireframe + Points (정점 색상 = 선택 상태)
        cage_gpu = self.cage_gpu
        if cage_gpu is not None:
            render_pass.set_vertex_buffer(0, cage_gpu.vertex_buffer, 0, cage_gpu.vertex_buffer.size)
            if cage_gpu.wire_buffer is not None:
                render_pass.set_pipeline(self.wireframe_pipeline)
                render_pass.set_index_buffer(cage_gpu.wire_buffer, wgpu.IndexFormat.uint32, 0, cage_gpu.wire_buffer.size)
                render_pass.draw_indexed(cage_gpu.n_wire_indices, 1, 0, 0, 0)
            render_pass.set_pipeline(self.point_pipeline)
            render_pass.draw(cage_gpu.mesh.n_vertices, 1, 0, 0)

        render_pass.end()
        self.device.queue.submit([encoder.finish()])
        canvas.request_draw()
