"""
Reading and validating App packages.

A package is a zip archive with an ``app.json`` manifest at its root, the
class file the manifest points to, an optional icon and optional
``i18n/<language>.json`` translation files. Problems are collected as
compiler errors instead of being raised so that callers can report all of
them at once.
"""

import base64
import binascii
import io
import json
import mimetypes
import posixpath
import zipfile
from dataclasses import dataclass, field
from typing import Any

MANIFEST_FILE = "app.json"
I18N_DIR = "i18n/"
REQUIRED_MANIFEST_FIELDS = ("id", "name", "version", "classFile")


@dataclass
class AppPackage:
    info: dict[str, Any] = field(default_factory=dict)
    settings: dict[str, dict[str, Any]] = field(default_factory=dict)
    language_content: dict[str, dict[str, Any]] = field(default_factory=dict)
    implemented: list[str] = field(default_factory=list)
    apis: list[dict[str, Any]] = field(default_factory=list)
    compiler_errors: list[dict[str, Any]] = field(default_factory=list)

    @property
    def app_id(self) -> str | None:
        return self.info.get("id")

    def error(self, file: str, message: str) -> None:
        self.compiler_errors.append({"file": file, "message": message})


def decode_package(package_b64: str) -> bytes:
    """Raises ValueError when the payload is not valid base64."""
    try:
        return base64.b64decode(package_b64, validate=True)
    except binascii.Error as e:
        raise ValueError(f"The App package is not valid base64: {e}") from e


def parse_package(data: bytes) -> AppPackage:
    package = AppPackage()
    try:
        archive = zipfile.ZipFile(io.BytesIO(data))
    except zipfile.BadZipFile:
        package.error("<package>", "The App package is not a valid zip archive.")
        return package

    with archive:
        names = set(archive.namelist())
        manifest = _read_json(archive, MANIFEST_FILE, names, package)
        if manifest is None:
            return package
        if not isinstance(manifest, dict):
            package.error(MANIFEST_FILE, "The manifest must be a JSON object.")
            return package

        package.info = dict(manifest)
        for key in REQUIRED_MANIFEST_FIELDS:
            value = manifest.get(key)
            if not isinstance(value, str) or not value.strip():
                package.error(MANIFEST_FILE, f'The manifest field "{key}" is required.')

        class_file = manifest.get("classFile")
        if isinstance(class_file, str) and class_file and class_file not in names:
            package.error(class_file, "The class file declared by the manifest is missing.")

        _read_icon(archive, manifest.get("iconFile"), names, package)
        _read_implements(manifest.get("implements", []), package)
        _read_settings(manifest.get("settings", []), package)
        _read_apis(manifest.get("apis", []), package)
        _read_languages(archive, names, package)

    # Settings and apis live on the App record, not in the info payload.
    package.info.pop("settings", None)
    package.info.pop("apis", None)
    package.info["implements"] = list(package.implemented)
    return package


def _read_json(archive: zipfile.ZipFile, name: str, names: set[str], package: AppPackage):
    if name not in names:
        package.error(name, f'The App package has no "{name}" file.')
        return None
    try:
        return json.loads(archive.read(name).decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        package.error(name, f"Invalid JSON: {e}")
        return None


def _read_icon(archive, icon_file, names: set[str], package: AppPackage) -> None:
    if not icon_file:
        return
    if icon_file not in names:
        package.error(icon_file, "The icon file declared by the manifest is missing.")
        return
    mime_type = mimetypes.guess_type(icon_file)[0] or "image/png"
    encoded = base64.b64encode(archive.read(icon_file)).decode("ascii")
    package.info["iconFileContent"] = f"data:{mime_type};base64,{encoded}"


def _read_implements(implements, package: AppPackage) -> None:
    if not isinstance(implements, list) or not all(isinstance(i, str) for i in implements):
        package.error(MANIFEST_FILE, '"implements" must be a list of interface names.')
        return
    package.implemented = list(dict.fromkeys(implements))


def _is_storable_key(value) -> bool:
    """Non-empty string usable as a MongoDB field name segment."""
    return (
        isinstance(value, str)
        and bool(value.strip())
        and "." not in value
        and not value.startswith("$")
    )


def _read_settings(settings, package: AppPackage) -> None:
    if not isinstance(settings, list):
        package.error(MANIFEST_FILE, '"settings" must be a list.')
        return
    for index, setting in enumerate(settings):
        if not isinstance(setting, dict):
            package.error(MANIFEST_FILE, f"Setting #{index} must be an object.")
            continue
        if not _is_storable_key(setting.get("id")):
            package.error(
                MANIFEST_FILE,
                f'Setting #{index} needs an "id" string without "." or a leading "$".',
            )
            continue
        if not isinstance(setting.get("type"), str) or not setting["type"]:
            package.error(MANIFEST_FILE, f'Setting #{index} needs a "type" string.')
            continue
        if setting["id"] in package.settings:
            package.error(MANIFEST_FILE, f'Duplicate setting id "{setting["id"]}".')
            continue
        package.settings[setting["id"]] = {
            "required": False,
            "public": False,
            "hidden": False,
            **setting,
            "value": setting.get("packageValue"),
        }


def _read_apis(apis, package: AppPackage) -> None:
    if not isinstance(apis, list):
        package.error(MANIFEST_FILE, '"apis" must be a list.')
        return
    for index, api in enumerate(apis):
        if not isinstance(api, dict) or not isinstance(api.get("path"), str):
            package.error(MANIFEST_FILE, f"Api #{index} must be an object with a path.")
            continue
        methods = api.get("methods", ["get"])
        if not isinstance(methods, list) or not all(isinstance(m, str) for m in methods):
            package.error(MANIFEST_FILE, f'Api #{index} "methods" must be a list of strings.')
            continue
        if not isinstance(api.get("visibility", "public"), str):
            package.error(MANIFEST_FILE, f'Api #{index} "visibility" must be a string.')
            continue
        if not isinstance(api.get("examples", {}), dict):
            package.error(MANIFEST_FILE, f'Api #{index} "examples" must be an object.')
            continue
        package.apis.append(api)


def _read_languages(archive, names: set[str], package: AppPackage) -> None:
    for name in sorted(names):
        if not name.startswith(I18N_DIR) or not name.endswith(".json"):
            continue
        language = posixpath.splitext(posixpath.basename(name))[0]
        if not _is_storable_key(language):
            package.error(
                name, 'A translation file name must not contain "." or start with "$".'
            )
            continue
        content = _read_json(archive, name, names, package)
        if content is None:
            continue
        if not isinstance(content, dict):
            package.error(name, "Translation files must contain a JSON object.")
            continue
        package.language_content[language] = content
