"""
Output Sink
Writes rendered charts to disk
"""

from pathlib import Path

from chart_spec import RenderedArtifact


def write(artifact: RenderedArtifact, path, width: int, height: int) -> None:
    """
    Writes the artifact's image bytes to `path`, creating parent folders.
    An existing file is overwritten.

    Parameters
    ----------
    artifact : RenderedArtifact
        Output of renderer.render.
    path : str | Path
        Destination file.
    width, height : int
        Expected pixel size. The sink never resamples, so a mismatch with
        the artifact raises ValueError instead of writing a wrong-size image.

    Raises
    ------
    OSError
        If the path cannot be written.
    """
    if (artifact.width, artifact.height) != (width, height):
        raise ValueError(f"Artifact is {artifact.width}x{artifact.height}px, "
                         f"asked to write {width}x{height}px")

    out = Path(path)
    out.parent.mkdir(parents=True, exist_ok=True)
    out.write_bytes(artifact.image)
