"""Rendering of standalone PHP loader artifacts."""

from __future__ import annotations

import hashlib
import json
import os
from datetime import datetime, timezone

from classmap.config import ScanOptions
from classmap.indexer.builder import ClassMap
from classmap.indexer.extractor import NAMESPACE_SEPARATOR

# Expression for the directory holding the generated file
ARTIFACT_DIR_MARKER = "__DIR__"

_LOADER_TEMPLATE = r"""<?php
/**
 * Generated standalone autoloader: %(loader_name)s
 *
 * Generated by classmap on %(timestamp)s
 * Total classes: %(class_count)d
 * Static files: %(static_count)d
 * Case insensitive: %(case_insensitive)s
 * Prepend: %(prepend)s
 * Relative paths: %(relative)s
 *
 * Usage: require or include this file to register the autoloader.
 *
 * @generated
 */

// Prevent multiple registrations of the same autoloader
if (!defined('%(marker)s'))
{
    define('%(marker)s', true);

    // Class to file mapping
    $GLOBALS['%(marker)s_mapping'] = %(mapping)s;

    // Configuration
    $GLOBALS['%(marker)s_case_insensitive'] = %(case_insensitive)s;

    // Autoloader function
    $GLOBALS['%(marker)s_loader'] = function ($className)
    {
        $mapping = $GLOBALS['%(marker)s_mapping'];
        $className = ltrim($className, '\\');
        $filePath = null;

        if ($GLOBALS['%(marker)s_case_insensitive'])
        {
            foreach ($mapping as $mappedClass => $mappedFile)
            {
                if (strcasecmp($mappedClass, $className) === 0)
                {
                    $filePath = $mappedFile;
                    break;
                }
            }
        }
        elseif (isset($mapping[$className]))
        {
            $filePath = $mapping[$className];
        }

        if (!$filePath || !is_file($filePath) || !is_readable($filePath))
        {
            return false;
        }

        try
        {
            require_once $filePath;
            return true;
        }
        catch (\Throwable $e)
        {
            trigger_error("Autoloader: Failed to load '{$filePath}': " . $e->getMessage(), E_USER_WARNING);
            return false;
        }
    };

    // Register the autoloader
    spl_autoload_register($GLOBALS['%(marker)s_loader'], true, %(prepend)s);
%(static_includes)s}
"""


def relative_path(base_dir: str, target_file: str) -> str:
    """Compute the path from a base directory to a file.

    The result starts with a separator so it can be appended to the
    artifact directory expression.

    Args:
        base_dir: Absolute directory the path is relative to.
        target_file: Absolute path of the target file.

    Returns:
        A ``/``-joined relative path such as ``/../lib/Foo.php``.
    """
    base_parts = base_dir.replace("\\", "/").rstrip("/").split("/")
    target_dir, _, filename = target_file.replace("\\", "/").rpartition("/")
    target_parts = target_dir.split("/")

    common = 0
    for base_part, target_part in zip(base_parts, target_parts):
        if base_part != target_part:
            break
        common += 1

    parts = [".."] * (len(base_parts) - common) + target_parts[common:] + [filename]
    return "/" + "/".join(parts)


def php_string(value: str) -> str:
    """Quote value as a single-quoted PHP string literal."""
    escaped = value.replace("\\", "\\\\").replace("'", "\\'")
    return f"'{escaped}'"


def path_expression(path: str, base_dir: str, relative: bool) -> str:
    """PHP expression evaluating to path, relative to the artifact if requested."""
    if not relative:
        return php_string(path)
    rel = relative_path(os.path.realpath(base_dir), os.path.realpath(path))
    return f"{ARTIFACT_DIR_MARKER} . {php_string(rel)}"


def mapping_literal(mapping: dict[str, str], base_dir: str, relative: bool) -> str:
    """Render the mapping as a PHP array literal."""
    if not mapping:
        return "[]"
    lines = ["["]
    for identifier, path in mapping.items():
        expr = path_expression(path, base_dir, relative)
        lines.append(f"        {php_string(identifier)} => {expr},")
    lines.append("    ]")
    return "\n".join(lines)


def loader_marker(classmap: ClassMap, options: ScanOptions) -> str:
    """Derive the constant name guarding against double registration."""
    payload = json.dumps(
        {
            "mapping": classmap.mapping,
            "static": list(classmap.static_files),
            "options": options.fingerprint(),
        },
        sort_keys=True,
    )
    return "classmap_" + hashlib.sha1(payload.encode("utf-8")).hexdigest()


def render_source(
    classmap: ClassMap,
    options: ScanOptions,
    generated_at: datetime | None = None,
) -> str:
    """Render a standalone PHP loader for a class map.

    Args:
        classmap: Scan result to embed.
        options: Rendering options (case sensitivity, prepend, relative paths,
            cosmetic loader name).
        generated_at: Timestamp for the header; defaults to now (UTC).

    Returns:
        PHP source code that registers the loader when included.
    """
    base_dir = str(classmap.directory)
    timestamp = (generated_at or datetime.now(timezone.utc)).strftime("%Y-%m-%d %H:%M:%S")
    loader_name = options.class_name
    if namespace := options.namespace.strip(NAMESPACE_SEPARATOR):
        loader_name = f"{namespace}{NAMESPACE_SEPARATOR}{loader_name}"

    static_includes = "".join(
        f"    require_once {path_expression(path, base_dir, options.relative)};\n"
        for path in classmap.static_files
    )
    if static_includes:
        static_includes = "\n    // Declaration-free files\n" + static_includes

    return _LOADER_TEMPLATE % {
        "loader_name": loader_name,
        "timestamp": timestamp,
        "class_count": len(classmap.mapping),
        "static_count": len(classmap.static_files),
        "case_insensitive": _php_bool(not options.case_sensitive),
        "prepend": _php_bool(options.prepend),
        "relative": _php_bool(options.relative),
        "marker": loader_marker(classmap, options),
        "mapping": mapping_literal(classmap.mapping, base_dir, options.relative),
        "static_includes": static_includes,
    }


def _php_bool(value: bool) -> str:
    return "true" if value else "false"
