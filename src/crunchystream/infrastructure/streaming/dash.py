"""MPEG-DASH manifest parsing.

Only the first ``Period`` is read; multi-period manifests are not served by
the platform. Each ``Representation`` becomes one :class:`Variant` whose
:class:`DashSource` carries the ``SegmentTemplate`` for the planner.
"""

from __future__ import annotations

import math
from collections.abc import Iterator
from urllib.parse import urljoin

import structlog
from lxml import etree

from crunchystream.domain.entities.variant import (
    DashSource,
    DrmInfo,
    Resolution,
    SegmentTemplate,
    TimelineEntry,
    Variant,
    VariantDescriptor,
)
from crunchystream.domain.exceptions import DecodeError, ProtocolError

log = structlog.get_logger(__name__)

_CENC_NS = "urn:mpeg:cenc:2013"

# AdaptationSets that carry neither audio nor video.
_SKIPPED_CONTENT_TYPES = ("text", "image")


# ---------------------------------------------------------------------------
# Element helpers (namespace agnostic)
# ---------------------------------------------------------------------------


def _local(el: etree._Element) -> str:
    return etree.QName(el).localname


def _children(el: etree._Element, name: str) -> Iterator[etree._Element]:
    for child in el:
        if isinstance(child.tag, str) and _local(child) == name:
            yield child


def _child(el: etree._Element, name: str) -> etree._Element | None:
    return next(_children(el, name), None)


def _attr(name: str, *elements: etree._Element | None) -> str | None:
    """First value of ``name`` walking from the innermost element outwards."""
    for el in elements:
        if el is not None:
            value = el.get(name)
            if value is not None and value.strip():
                return value.strip()
    return None


def _base_url(el: etree._Element, inherited: str | None, manifest_url: str) -> str | None:
    """Resolve ``el``'s first BaseURL against the inherited one.

    Returns ``inherited`` unchanged when ``el`` declares none; ``None`` means
    no level declared a BaseURL so far.
    """
    node = _child(el, "BaseURL")
    if node is None or not (node.text or "").strip():
        return inherited
    return urljoin(inherited or manifest_url, node.text.strip())


# ---------------------------------------------------------------------------
# Attribute parsing
# ---------------------------------------------------------------------------


def parse_frame_rate(value: str) -> float:
    """Parse ``"24000/1001"``, ``"25"`` or ``"23.976"``.

    Raises ValueError for malformed, zero-denominator or non-positive rates.
    """
    if "/" in value:
        num, _, den = value.partition("/")
        numerator, denominator = float(num), float(den)
        if denominator == 0:
            raise ValueError(f"zero denominator in frame rate {value!r}")
        rate = numerator / denominator
    else:
        rate = float(value)
    if not math.isfinite(rate) or rate <= 0:
        raise ValueError(f"non-positive frame rate {value!r}")
    return rate


def _int_attr(
    name: str, *elements: etree._Element | None, required: bool = True
) -> int | None:
    raw = _attr(name, *elements)
    if raw is None:
        if required:
            raise ProtocolError(name)
        return None
    try:
        return int(raw)
    except ValueError:
        raise ProtocolError(name, f"{name} is not an integer: {raw!r}") from None


def _is_video(adaptation_set: etree._Element) -> bool:
    if adaptation_set.get("maxWidth") or adaptation_set.get("maxHeight"):
        return True
    content = adaptation_set.get("contentType") or adaptation_set.get("mimeType") or ""
    return content.startswith("video")


def _is_skipped(adaptation_set: etree._Element) -> bool:
    content = adaptation_set.get("contentType") or adaptation_set.get("mimeType") or ""
    return content.startswith(_SKIPPED_CONTENT_TYPES)


def _pssh(*levels: etree._Element) -> tuple[bool, str | None]:
    """(protected, pssh) from the nearest level carrying ContentProtection."""
    for level in levels:
        protections = list(_children(level, "ContentProtection"))
        if not protections:
            continue
        for protection in protections:
            for node in protection.iter(f"{{{_CENC_NS}}}pssh"):
                if node.text and node.text.strip():
                    return True, node.text.strip()
        return True, None
    return False, None


def _segment_template(*levels: etree._Element) -> SegmentTemplate | None:
    template = None
    for level in levels:
        template = _child(level, "SegmentTemplate")
        if template is not None:
            break
    if template is None:
        return None

    timescale = _int_attr("timescale", template, required=False)
    if timescale is None:
        timescale = 1
    if timescale <= 0:
        raise ProtocolError("timescale", f"timescale must be positive, got {timescale}")

    entries: list[TimelineEntry] = []
    timeline = _child(template, "SegmentTimeline")
    if timeline is not None:
        for s in _children(timeline, "S"):
            duration = _int_attr("d", s)
            repeat = _int_attr("r", s, required=False) or 0
            if repeat < 0:
                raise ProtocolError("r", "open ended SegmentTimeline repeat is unsupported")
            entries.append(
                TimelineEntry(
                    duration=duration,
                    repeat=repeat,
                    start=_int_attr("t", s, required=False),
                )
            )

    return SegmentTemplate(
        media=template.get("media"),
        initialization=template.get("initialization"),
        start_number=_int_attr("startNumber", template, required=False),
        timescale=timescale,
        timeline=tuple(entries),
    )


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def parse_mpd(
    body: bytes,
    *,
    manifest_url: str,
    drm_token: str,
    strict: bool = True,
) -> list[Variant]:
    """Parse an MPD document into video and audio variants.

    ``strict`` turns missing codecs/resolution/frame-rate/sampling-rate into
    ProtocolError; otherwise ``""``, ``0x0``, ``0`` placeholders are used.
    """
    parser = etree.XMLParser(resolve_entities=False, no_network=True)
    try:
        root = etree.fromstring(body, parser=parser)
    except etree.XMLSyntaxError as exc:
        raise DecodeError(
            f"malformed MPD: {exc}", body=body, url=manifest_url
        ) from exc
    if root is None or _local(root) != "MPD":
        raise DecodeError("document is not an MPD", body=body, url=manifest_url)

    period = _child(root, "Period")
    if period is None:
        raise ProtocolError("Period", url=manifest_url)

    mpd_base = _base_url(root, None, manifest_url)
    period_base = _base_url(period, mpd_base, manifest_url)

    variants: list[Variant] = []
    for adaptation_set in _children(period, "AdaptationSet"):
        if _is_skipped(adaptation_set):
            continue
        video = _is_video(adaptation_set)
        set_base = _base_url(adaptation_set, period_base, manifest_url)

        for rep in _children(adaptation_set, "Representation"):
            variants.append(
                _parse_representation(
                    rep,
                    adaptation_set,
                    video=video,
                    parent_base=set_base,
                    drm_token=drm_token,
                    strict=strict,
                    manifest_url=manifest_url,
                )
            )

    log.debug(
        "mpd_parsed",
        url=manifest_url,
        variants=len(variants),
        video=sum(1 for v in variants if v.kind == "video"),
    )
    return variants


def _parse_representation(
    rep: etree._Element,
    adaptation_set: etree._Element,
    *,
    video: bool,
    parent_base: str | None,
    drm_token: str,
    strict: bool,
    manifest_url: str,
) -> Variant:
    rep_id = rep.get("id")
    if not rep_id:
        raise ProtocolError("id", "Representation without id", url=manifest_url)
    base_url = _base_url(rep, parent_base, manifest_url)
    if base_url is None:
        raise ProtocolError("BaseURL", url=manifest_url)

    bandwidth = _int_attr("bandwidth", rep)

    codecs = _attr("codecs", rep, adaptation_set)
    if codecs is None:
        if strict:
            raise ProtocolError("codecs", url=manifest_url)
        codecs = ""

    protected, pssh = _pssh(rep, adaptation_set)
    drm = DrmInfo(pssh=pssh, token=drm_token) if protected else None

    if video:
        width = _int_attr("width", rep, adaptation_set, required=strict) or 0
        height = _int_attr("height", rep, adaptation_set, required=strict) or 0
        if width <= 0 or height <= 0:
            if strict:
                raise ProtocolError(
                    "width" if width <= 0 else "height",
                    f"unusable resolution {width}x{height}",
                    url=manifest_url,
                )
            width, height = 0, 0
        fps = _frame_rate(rep, adaptation_set, strict=strict)
        descriptor = VariantDescriptor(
            bandwidth=bandwidth,
            codecs=codecs,
            resolution=Resolution(width, height),
            fps=fps,
            drm=drm,
        )
    else:
        rate = _int_attr("audioSamplingRate", rep, adaptation_set, required=strict)
        descriptor = VariantDescriptor(
            bandwidth=bandwidth,
            codecs=codecs,
            sampling_rate=rate or 0,
            drm=drm,
        )

    source = DashSource(
        representation_id=rep_id,
        base_url=base_url,
        template=_segment_template(rep, adaptation_set),
        bandwidth=bandwidth,
    )
    return Variant(descriptor=descriptor, source=source)


def _frame_rate(
    rep: etree._Element, adaptation_set: etree._Element, *, strict: bool
) -> float:
    raw = _attr("frameRate", rep, adaptation_set)
    if raw is None:
        if strict:
            raise ProtocolError("frameRate")
        return 0.0
    try:
        return parse_frame_rate(raw)
    except ValueError:
        if strict:
            raise ProtocolError(
                "frameRate", f"invalid frame rate {raw!r}"
            ) from None
        return 0.0
