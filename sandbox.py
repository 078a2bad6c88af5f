import json
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterable, List, Set, Tuple

from jinja2 import Environment, FileSystemLoader

TEMPLATE_DIR = Path(__file__).resolve().parent / 'templates'

# Script-rendering document: nothing in here is HTML-escaped.
_env = Environment(loader=FileSystemLoader(str(TEMPLATE_DIR)), autoescape=False)

IMPORT_RE = re.compile(
    r'^[ \t]*import\s+(?:(?P<type>type)\s+)?(?:(?P<clause>[^;\'"]*?)\s*from\s*)?'
    r'["\'](?P<module>[^"\']+)["\'][ \t]*;?[ \t]*$',
    re.MULTILINE,
)
DIRECTIVE_RE = re.compile(r'^[ \t]*["\']use (?:client|server)["\'][ \t]*;?[ \t]*$', re.MULTILINE)

EXPORT_LIST_RE = re.compile(
    r'^[ \t]*export\s+(?:type\s+)?(?:\{[^}]*\}|\*(?:\s+as\s+[\w$]+)?)'
    r'(?:\s*from\s*["\'][^"\']+["\'])?[ \t]*;?[ \t]*$',
    re.MULTILINE,
)
DEFAULT_NAME_RE = re.compile(
    r'^[ \t]*export\s+default\s+(?!function\b|class\b|async\b)([A-Za-z_$][\w$]*)[ \t]*;?[ \t]*$',
    re.MULTILINE,
)
DEFAULT_DECL_RE = re.compile(
    r'^([ \t]*)export\s+default\s+((?:async\s+)?function\*?|class)(?=[\s({])\s*([A-Za-z_$][\w$]*)?',
    re.MULTILINE,
)
DEFAULT_EXPR_RE = re.compile(r'^([ \t]*)export\s+default\s+', re.MULTILINE)
NAMED_EXPORT_RE = re.compile(
    r'^([ \t]*)export\s+(?=(?:declare|abstract|async|const|let|var|function|class|interface|type|enum)\b)',
    re.MULTILINE,
)
TOP_LEVEL_DECL_RE = re.compile(
    r'^(?:async\s+)?(?:function\*?|class|const|let|var)\s+([A-Za-z_$][\w$]*)',
    re.MULTILINE,
)

# Names the preview document defines on ``previewUi``
SHIMMED = ('Button', 'Input', 'Textarea', 'Label', 'Badge', 'Card', 'CardHeader', 'CardTitle',
           'CardDescription', 'CardContent', 'CardFooter', 'cn')
CLASS_HELPERS = ('clsx', 'twMerge')
REACT_DEFAULTS = ('useState', 'useEffect', 'useRef', 'useMemo', 'useCallback', 'useContext',
                  'useReducer', 'Fragment')
LINK_TAGS = {'next/link': 'a', 'next/image': 'img'}
ANONYMOUS_DEFAULT = 'PreviewRoot'


@dataclass(frozen=True)
class ImportedName:
    module: str
    imported: str  # exported name, 'default' or '*'
    local: str


def component_name(file_path: str) -> str:
    """``login-form.tsx`` -> ``LoginForm``."""
    stem = Path(file_path or '').name
    if stem.endswith('.tsx'):
        stem = stem[:-len('.tsx')]
    parts = re.split(r'[^a-zA-Z0-9]+', stem)
    name = ''.join(p[:1].upper() + p[1:] for p in parts if p)
    if not name or name[0].isdigit():
        return 'Component'
    return name


def _clause_names(module: str, clause: str) -> List[ImportedName]:
    names = []
    braces = re.search(r'\{([^}]*)\}', clause)
    if braces:
        for spec in braces.group(1).split(','):
            spec = spec.strip()
            if not spec or spec.startswith('type '):
                continue
            imported, *alias = re.split(r'\s+as\s+', spec)
            names.append(ImportedName(module, imported, alias[0] if alias else imported))
        clause = clause[:braces.start()] + clause[braces.end():]
    for part in clause.split(','):
        part = part.strip()
        if part.startswith('*'):
            names.append(ImportedName(module, '*', part.split()[-1]))
        elif part:
            names.append(ImportedName(module, 'default', part))
    return names


def strip_imports(source: str) -> Tuple[str, List[ImportedName]]:
    """Remove every import statement and module directive.

    Returns the remaining source and the value bindings the imports made;
    type-only imports bind nothing.
    """
    names = []

    def collect(match):
        clause = match.group('clause')
        if clause and not match.group('type'):
            names.extend(_clause_names(match.group('module'), clause))
        return ''

    stripped = IMPORT_RE.sub(collect, source or '')
    return DIRECTIVE_RE.sub('', stripped), names


def strip_exports(source: str, file_path: str) -> Tuple[str, str]:
    """Turn module exports into plain declarations.

    Returns the source and the name of the component to mount: the default
    export when there is one, else the name inferred from the file path.
    """
    render = None

    def default_name(match):
        nonlocal render
        render = match.group(1)
        return ''

    def default_decl(match):
        nonlocal render
        indent, keyword, name = match.groups()
        if name and name != 'extends':
            render = name
            return f'{indent}{keyword} {name}'
        render = ANONYMOUS_DEFAULT
        return f"{indent}{keyword} {ANONYMOUS_DEFAULT}{' ' + name if name else ''}"

    def default_expr(match):
        nonlocal render
        render = ANONYMOUS_DEFAULT
        return f'{match.group(1)}const {ANONYMOUS_DEFAULT} = '

    source = EXPORT_LIST_RE.sub('', source)
    source = DEFAULT_NAME_RE.sub(default_name, source)
    source = DEFAULT_DECL_RE.sub(default_decl, source)
    source = DEFAULT_EXPR_RE.sub(default_expr, source)
    source = NAMED_EXPORT_RE.sub(r'\1', source)
    return source, render or component_name(file_path)


def _destructure(pairs: Dict[str, str], target: str) -> str:
    parts = [imported if imported == local else f'{imported}: {local}' for local, imported in pairs.items()]
    return f"const {{ {', '.join(parts)} }} = {target};"


def preview_bindings(names: Iterable[ImportedName], declared: Set[str]) -> List[str]:
    """Declarations that stand in for what the stripped imports provided.

    Names the component declares itself are never rebound.
    """
    react = {hook: hook for hook in REACT_DEFAULTS if hook not in declared}
    react_dom = {}
    aliases = {}

    for name in names:
        local = name.local
        if local in declared or local in react or local in react_dom or local in aliases:
            continue
        module = name.module
        if module == 'react' or module == 'react-dom' or module.startswith('react-dom/'):
            target = 'React' if module == 'react' else 'ReactDOM'
            if name.imported in ('default', '*'):
                if local != target:
                    aliases[local] = target
            elif module == 'react':
                react[local] = name.imported
            else:
                react_dom[local] = name.imported
        elif name.imported in SHIMMED:
            if local != name.imported:
                aliases[local] = f'previewUi.{name.imported}'
        elif local in SHIMMED:
            continue
        elif name.imported in CLASS_HELPERS or local in CLASS_HELPERS:
            aliases[local] = 'previewUi.cn'
        elif module == 'lucide-react' or module.startswith('lucide-react/'):
            if name.imported == '*':
                aliases[local] = 'previewIconSet'
            else:
                icon = local if name.imported == 'default' else name.imported
                aliases[local] = f'previewIcon({json.dumps(icon)})'
        else:
            tag = LINK_TAGS.get(module, 'div')
            aliases[local] = f'previewPrimitive({json.dumps(local)}, {json.dumps(tag)})'

    lines = []
    if react:
        lines.append(_destructure(react, 'React'))
    if react_dom:
        lines.append(_destructure(react_dom, 'ReactDOM'))
    shims = {n: n for n in SHIMMED if n not in declared and n not in aliases}
    if shims:
        lines.append(_destructure(shims, 'previewUi'))
    lines.extend(f'const {local} = {value};' for local, value in aliases.items())
    return lines


def build_preview_document(file_path: str, source: str) -> str:
    """Standalone HTML page that transpiles and mounts one generated file.

    Imports and exports are rewritten so the file runs as a plain browser
    script. The source is not checked otherwise; the iframe's sandbox
    attribute is the only guard.
    """
    body, names = strip_imports(source)
    body, render = strip_exports(body, file_path)
    declared = set(TOP_LEVEL_DECL_RE.findall(body))
    return _env.get_template('preview.html').render(
        bindings=preview_bindings(names, declared),
        component_source=body,
        component_name=render,
    )
