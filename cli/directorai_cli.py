"""
DirectorAI CLI - 스튜디오 백엔드 명령줄 도구.

명령:
- projects          프로젝트 목록
- create            새 프로젝트 생성
- analyze           스크립트 파일을 챕터에 저장하고 해석
- check-connection  ComfyUI 연결 확인
- rules             파싱 규칙 목록
"""

import argparse
import asyncio
import sys
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv

# Add parent directory to path for imports
sys.path.append(str(Path(__file__).parent.parent))

from utils.errors import DirectorAIError


def print_banner():
    """Print DirectorAI banner."""
    print("""
=====================================================================
              DirectorAI - AI Storyboard Studio (v1.0)
=====================================================================
""")


def cmd_projects(studio, args) -> int:
    projects = studio.list_projects()
    if not projects:
        print("No projects yet.")
        return 0
    for meta in projects:
        print(f"{meta.id}  {meta.title}  shots={meta.shot_count}  style={meta.art_style_label or '-'}")
    return 0


def cmd_create(studio, args) -> int:
    project = studio.create_project(args.title, style_id=args.style)
    print(f"[OK] Created project {project.id}")
    print(f"     Segment: {project.segments[0].id} ({project.segments[0].name})")
    return 0


def cmd_analyze(studio, args) -> int:
    script = Path(args.script_file).read_text(encoding="utf-8")
    project = studio.open_project(args.project_id)
    segment_id = args.segment or project.segments[0].id

    segment = asyncio.run(studio.analyze_script(segment_id, script_raw=script, rule_id=args.rule))
    print(f"[OK] {len(segment.shots)} shots, {len(studio.project.assets)} assets in project")
    for shot in segment.shots:
        print(f"  #{shot.sequence} [{shot.shot_type}] {shot.script_content[:60]}")
    studio.close_project()
    return 0


def cmd_check_connection(studio, args) -> int:
    url = (args.url or studio.settings.comfy_ui_url).rstrip("/")
    connected = asyncio.run(studio.check_connection(url))
    print(f"ComfyUI {url}: {'connected' if connected else 'unreachable'}")
    return 0 if connected else 1


def cmd_rules(studio, args) -> int:
    for rule in studio.list_rules():
        marker = "*" if rule.is_default else " "
        print(f"{marker} {rule.id}  {rule.name}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="directorai", description="DirectorAI storyboard studio")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("projects", help="List projects").set_defaults(func=cmd_projects)

    p = sub.add_parser("create", help="Create a project")
    p.add_argument("title")
    p.add_argument("--style", default="cyberpunk", help="Art style preset id")
    p.set_defaults(func=cmd_create)

    p = sub.add_parser("analyze", help="Save a script into a segment and analyze it")
    p.add_argument("project_id")
    p.add_argument("script_file")
    p.add_argument("--segment", help="Segment id (default: first segment)")
    p.add_argument("--rule", help="Parsing rule id (default: the default rule)")
    p.set_defaults(func=cmd_analyze)

    p = sub.add_parser("check-connection", help="Probe the ComfyUI server")
    p.add_argument("--url", help="ComfyUI URL (default: settings)")
    p.set_defaults(func=cmd_check_connection)

    sub.add_parser("rules", help="List parsing rules").set_defaults(func=cmd_rules)
    return parser


def main(argv: Optional[List[str]] = None, studio=None) -> int:
    load_dotenv()
    args = build_parser().parse_args(argv)

    if studio is None:
        from studio import StudioController
        print_banner()
        studio = StudioController()

    try:
        return args.func(studio, args)
    except DirectorAIError as e:
        print(f"[ERROR] {e.message}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
