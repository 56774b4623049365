"""
CLI entry point for STL cavity extraction
"""

import argparse
import sys
import logging
from pathlib import Path
from typing import Optional, TextIO

from .config import create_config_template, load_config, output_options
from .constants import DEFAULT_CONFIG_FILE, DEFAULT_OUTPUT_DIR
from .exceptions import ConfigurationError
from .mesh import StlMesh
from .point_in_mesh import RayCastSettings
from .writer import write_ascii_stl_from_triangles

logger = logging.getLogger('stl_cavity.cli')


def setup_logging(verbose: bool = False, log_file: Optional[str] = None):
    """Setup logging configuration; reports go to stdout, logs to stderr."""
    level = logging.DEBUG if verbose else logging.INFO
    format_str = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

    handlers = [logging.StreamHandler(sys.stderr)]
    if log_file:
        handlers.append(logging.FileHandler(log_file))

    logging.basicConfig(level=level, format=format_str, handlers=handlers, force=True)


def print_quality_report(mesh: StlMesh, out: TextIO) -> None:
    """Watertight and winding reports followed by the volume."""
    mesh.check_watertight(out)
    mesh.check_right_hand_winding(out)
    out.write(f"Volume: {mesh.volume():.10f}\n")


def print_file_quality_report(path: Path, label: str, out: TextIO) -> None:
    mesh = StlMesh()
    if not mesh.read(path):
        out.write(f"{label}: failed to read {path}\n")
        return
    mesh.remove_duplicate_vertices()
    out.write(f"--- {label} ({path}) ---\n")
    print_quality_report(mesh, out)
    out.write("\n")


def run_validate(path: Path) -> int:
    """Print the quality report of one STL file without writing anything."""
    mesh = StlMesh()
    if not mesh.read(path):
        print(f"validate: read failed: {path}", file=sys.stderr)
        return 1
    mesh.remove_duplicate_vertices()

    out = sys.stdout
    out.write("Geometry quality report\n")
    out.write(f"--- {path} ---\n")
    print_quality_report(mesh, out)
    return 0


def run_pipeline(input_path: Path, output_dir: Path, config: dict, write_even_hits: bool = False) -> int:
    """Write the solid and its extracted fluid cavity, then report on both."""
    try:
        output_dir.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        print(f"Cannot create output directory '{output_dir}': {e}", file=sys.stderr)
        return 1

    options = output_options(config)
    settings = RayCastSettings.from_config(config)
    solid_path = output_dir / options["solid_file"]
    fluid_path = output_dir / options["fluid_file"]

    mesh = StlMesh()
    if not mesh.read(input_path):
        print(f"read failed: {input_path}", file=sys.stderr)
        return 1
    mesh.remove_duplicate_vertices()

    if not mesh.write_ascii_stl(solid_path):
        print("write ASCII STL failed", file=sys.stderr)
        return 1
    full_volume = mesh.volume()

    even_hits = mesh.find_even_hit_triangles(settings)
    if write_even_hits or options["write_even_hits"]:
        if not mesh.write_ascii_stl(output_dir / options["even_hits_file"], even_hits):
            print("write even-hit STL failed", file=sys.stderr)
            return 1

    fluid = mesh.compute_fluid_mesh(settings, even_hits=even_hits)
    if not write_ascii_stl_from_triangles(fluid_path, fluid):
        print("write fluid STL failed", file=sys.stderr)
        return 1

    print(f"Solid geometry volume: {full_volume:.10f}")
    fluid_volume = StlMesh.volume_from_file(fluid_path)
    if fluid_volume is not None:
        print(f"Fluid geometry volume: {fluid_volume:.10f}")
    else:
        print("Failed to compute volume of fluid STL", file=sys.stderr)
    print(f"Output: {solid_path}, {fluid_path}")

    print("\nGeometry quality report")
    print_file_quality_report(solid_path, "Solid", sys.stdout)
    print_file_quality_report(fluid_path, "Fluid", sys.stdout)
    return 0


def main(argv=None):
    """Main CLI entry point"""
    parser = argparse.ArgumentParser(
        prog="stl_cavity",
        description="STL cavity extraction - solid volume, fluid cavity mesh and quality checks",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Extract the fluid cavity of a solid
  python -m stl_cavity run part.stl --output output/

  # Print the quality report of a mesh
  python -m stl_cavity validate part.stl

  # Create configuration template
  python -m stl_cavity create-config --output my_config.json
        """
    )

    subparsers = parser.add_subparsers(dest='command', help='Available commands')

    run_parser = subparsers.add_parser('run', help='Write solid and fluid meshes and report on both')
    run_parser.add_argument('input', help='Input STL file (ASCII or binary)')
    run_parser.add_argument('--output', default=DEFAULT_OUTPUT_DIR, help='Output directory (default: output)')
    run_parser.add_argument('--config', help='JSON configuration file')
    run_parser.add_argument('--even-hits', action='store_true', help='Also write the ray-parity selection')
    run_parser.add_argument('--log-file', help='Also write log messages to this file')
    run_parser.add_argument('--verbose', '-v', action='store_true', help='Verbose output')

    validate_parser = subparsers.add_parser('validate', help='Print the geometry quality report only')
    validate_parser.add_argument('path', help='STL file to check')
    validate_parser.add_argument('--verbose', '-v', action='store_true', help='Verbose output')

    config_parser = subparsers.add_parser('create-config', help='Create configuration template')
    config_parser.add_argument('--output', default=DEFAULT_CONFIG_FILE, help='Output config file name')

    try:
        args = parser.parse_args(argv)
    except SystemExit as e:
        # usage errors exit with 1, --help with 0
        return 0 if e.code == 0 else 1

    if not args.command:
        parser.print_help(sys.stderr)
        return 1

    setup_logging(getattr(args, 'verbose', False), getattr(args, 'log_file', None))

    try:
        if args.command == 'run':
            config = load_config(args.config)
            return run_pipeline(Path(args.input), Path(args.output), config, args.even_hits)

        if args.command == 'validate':
            return run_validate(Path(args.path))

        if args.command == 'create-config':
            create_config_template(Path(args.output))
            return 0

    except ConfigurationError as e:
        logger.error(f"Configuration error: {e}")
        return 1
    except OSError as e:
        logger.error(f"Error: {e}")
        if getattr(args, 'verbose', False):
            import traceback
            traceback.print_exc()
        return 1

    return 1


if __name__ == "__main__":
    sys.exit(main())
