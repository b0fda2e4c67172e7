"""Batch processing example for a folder of faceplate photos."""

from pathlib import Path
from knobfinder.config import DetectorConfig
from knobfinder.core import FaceplateProcessor
from knobfinder.utils.io_handler import JSONWriter
from knobfinder.utils.logger import setup_logger, create_session_log_file


def main():
    """Process multiple faceplates in batch."""
    logger = setup_logger('knobfinder', log_file=create_session_log_file())

    processor = FaceplateProcessor(DetectorConfig.from_preset('relaxed'))

    # Get all images
    images_dir = Path("test_data/faceplates")
    image_files = sorted(images_dir.glob("*.jpg")) + sorted(images_dir.glob("*.png"))

    logger.info(f"Processing {len(image_files)} faceplates...")

    results = []
    for i, image_path in enumerate(image_files):
        logger.info(f"Processing image {i+1}/{len(image_files)}: {image_path.name}")

        try:
            result = processor.process_image(str(image_path))
        except ValueError as e:
            logger.warning(str(e))
            continue

        results.append(result)

    # Save results
    JSONWriter.save_results(results, "output/batch_results.json")
    logger.info("Batch processing complete!")


if __name__ == "__main__":
    main()
