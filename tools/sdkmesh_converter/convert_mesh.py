#!/usr/bin/env python3
"""Convert SDKMESH meshes to OBJ or glTF.

Usage:
    python convert_mesh.py <input> [-o <output>] [-f obj|glb] [--no-mtl] [-v]

Examples:
    # Convert a single file to OBJ (+ MTL)
    python convert_mesh.py tiny.sdkmesh -o ./output

    # Convert every SDKMESH file in a directory tree to GLB
    python convert_mesh.py ./media/ -o ./output -f glb

    # OBJ input can be re-exported as GLB
    python convert_mesh.py model.obj -f glb
"""
import argparse
import os
import sys
from pathlib import Path

from gltf_exporter import GLTFExporter
from mesh_errors import MeshConvertError
from mesh_model import MeshModel
from obj_exporter import ObjExporter, write_mtl
from obj_loader import ObjLoader
from sdkmesh_loader import SdkMeshLoader

LOADERS = {
    ".sdkmesh": SdkMeshLoader,
    ".obj": ObjLoader,
}


def load_mesh(path: Path, model: MeshModel) -> MeshModel:
    """Load a mesh file with the loader matching its extension."""
    loader_cls = LOADERS.get(path.suffix.lower())
    if loader_cls is None:
        raise MeshConvertError(f"Importing {path.suffix or 'extensionless'} files is not supported")
    return loader_cls(path).load(model)


def export_mesh(model: MeshModel, source: Path, output_dir: Path, output_format: str, write_materials: bool) -> Path:
    """Write a loaded mesh next to its siblings in the output directory."""
    output_file = output_dir / f"{source.stem}.{output_format}"
    if output_format == "obj":
        material_library = None
        if write_materials and model.materials:
            material_library = f"{source.stem}.mtl"
        ObjExporter(model, material_library).export(output_file)
        if material_library:
            write_mtl(model, output_dir / material_library)
    else:
        GLTFExporter(model, name=source.stem).export(output_file)
    return output_file


def main():
    parser = argparse.ArgumentParser(
        description="Convert SDKMESH meshes to OBJ or glTF"
    )
    parser.add_argument(
        "input",
        help="Input mesh file or directory containing SDKMESH files",
    )
    parser.add_argument(
        "-o", "--output",
        default="./output",
        help="Output directory for converted files (default: ./output)",
    )
    parser.add_argument(
        "-f", "--format",
        choices=["obj", "glb", "sdkmesh"],
        default="obj",
        help="Output format (default: obj)",
    )
    parser.add_argument(
        "--no-mtl",
        action="store_true",
        help="Skip the MTL material library for OBJ output",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Verbose output",
    )

    args = parser.parse_args()

    if args.format == "sdkmesh":
        print("Writing SDKMESH files is not supported", file=sys.stderr)
        return 1

    # Collect input files
    input_path = Path(args.input)
    if input_path.is_file():
        files = [input_path]
    elif input_path.is_dir():
        files = sorted(input_path.glob("**/*.sdkmesh"))
        if args.format != "obj":
            files += sorted(input_path.glob("**/*.obj"))
        if not files:
            print(f"No mesh files found in {input_path}", file=sys.stderr)
            return 1
    else:
        print(f"Input not found: {args.input}", file=sys.stderr)
        return 1

    # Ensure output directory exists
    os.makedirs(args.output, exist_ok=True)
    output_dir = Path(args.output)

    success_count = 0
    fail_count = 0
    model = MeshModel()

    for mesh_file in files:
        try:
            load_mesh(mesh_file, model)
            if args.verbose:
                print(f"Loaded: {mesh_file} ({model.vertex_count} vertices, {model.face_count} faces)")
            output_file = export_mesh(model, mesh_file, output_dir, args.format, not args.no_mtl)
            if args.verbose:
                print(f"Exported: {mesh_file} -> {output_file}")
            success_count += 1
        except (MeshConvertError, OSError) as e:
            print(f"Failed: {mesh_file} - {e}", file=sys.stderr)
            fail_count += 1

    # Summary
    total = success_count + fail_count
    print(f"\nConverted {success_count}/{total} files to {args.output}")

    return 0 if fail_count == 0 else 1


if __name__ == "__main__":
    sys.exit(main())
