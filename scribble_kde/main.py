"""
End-to-end example: scribbles -> color densities -> probability maps.

Steps:
    1. Load the image and convert it to Lab
    2. Binarize the foreground and background scribbles
    3. Export the raw and median-filtered densities for plotting
    4. Score the image against each class and save heat-maps
"""

import os
from typing import Dict

from scribble_kde.cste import ClassInfo, DataPath, GeneralConfig
from scribble_kde.exceptions import DimensionMismatch
from scribble_kde.histogram_evaluation import score_class_images
from scribble_kde.histogram_extraction import estimate_class_densities
from scribble_kde.io_utils import (
    load_image,
    load_scribble_mask,
    rgb_to_lab,
    save_densities_tsv,
    save_probability_map_tsv,
    split_channels,
)
from scribble_kde.logger import get_logger
from scribble_kde.probability_table import ProbabilityMap
from scribble_kde.visualization import imagesc, plot_densities, save_heatmap, show_image

log = get_logger("main")


def run_pipeline(
    img_path: str,
    fg_scribble_path: str,
    bg_scribble_path: str,
    output_dir: str = DataPath.RESULT_PATH,
    smooth: bool = True,
    log_space: bool = False,
    num_workers: int = GeneralConfig.NB_JOBS,
    show: bool = False,
) -> Dict[str, ProbabilityMap]:
    """
    Run the whole scribble pipeline on one image.

    Args:
        img_path: Input RGB image
        fg_scribble_path: Foreground annotation image (same size)
        bg_scribble_path: Background annotation image (same size)
        output_dir: Directory receiving density dumps, maps and heat-maps
        smooth: Median-filter the histograms used for scoring
        log_space: Score in log-probability space
        num_workers: Worker processes for histogram accumulation
        show: Display each heat-map in a window until Escape is pressed

    Returns:
        Dictionary mapping class name to its ProbabilityMap

    Raises:
        DimensionMismatch: If a scribble does not match the image size
    """
    log.info("=" * 70)
    log.info("SCRIBBLE DENSITY PIPELINE")
    log.info("=" * 70)
    log.info(f"Image: {img_path}")
    log.info(f"Scribbles: {fg_scribble_path}, {bg_scribble_path}")

    #! Load image and scribbles
    img = load_image(img_path)
    h, w = img.shape[:2]
    fg_mask = load_scribble_mask(fg_scribble_path)
    bg_mask = load_scribble_mask(bg_scribble_path)

    for name, mask in ((ClassInfo.FOREGROUND, fg_mask), (ClassInfo.BACKGROUND, bg_mask)):
        if mask.shape != (h, w):
            raise DimensionMismatch(
                f"{name} scribble {mask.shape} does not match image {(h, w)}"
            )

    channels = split_channels(rgb_to_lab(img))

    #! Export densities with and without median filtering
    table_sets = {}
    for smoothed, filename in (
        (False, DataPath.DENSITIES_NOMEDFILTER),
        (True, DataPath.DENSITIES_MEDFILTER),
    ):
        densities = estimate_class_densities(
            channels, fg_mask, bg_mask, width=w, height=h,
            smooth=smoothed, num_workers=num_workers,
        )
        save_densities_tsv(
            os.path.join(output_dir, filename),
            densities[ClassInfo.FOREGROUND],
            densities[ClassInfo.BACKGROUND],
        )
        plot_densities(
            densities[ClassInfo.FOREGROUND],
            densities[ClassInfo.BACKGROUND],
            save_path=os.path.join(output_dir, os.path.splitext(filename)[0] + ".png"),
        )
        table_sets[smoothed] = densities

    #! Score each class
    maps = score_class_images(
        table_sets[bool(smooth)], channels, width=w, height=h, log_space=log_space
    )

    for class_name, prob_map in maps.items():
        save_probability_map_tsv(os.path.join(output_dir, f"{class_name}_prob.txt"), prob_map)
        save_heatmap(prob_map.values, os.path.join(output_dir, f"{class_name}_prob.png"))
        if show:
            show_image(imagesc(prob_map.values), f"{class_name} probability")

    log.info("Pipeline complete")
    return maps


if __name__ == "__main__":
    run_pipeline(
        img_path=DataPath.IMG_INPUT,
        fg_scribble_path=DataPath.SCRIBBLE_FG,
        bg_scribble_path=DataPath.SCRIBBLE_BG,
    )
