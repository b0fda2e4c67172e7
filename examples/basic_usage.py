"""Basic usage example for knobfinder."""

from knobfinder import DetectorConfig, detect
from knobfinder.config import suggest_radius_range
from knobfinder.coordinates.transformer import CoordinateTransformer
from knobfinder.utils.io_handler import load_image, save_image
from knobfinder.utils.visualization import draw_circles


def main():
    """Detect controls on one faceplate photo."""
    # Load image
    image_path = "test_data/faceplates/sample_faceplate.jpg"
    image = load_image(image_path)

    if image is None:
        print(f"Error: Could not load image from {image_path}")
        return

    # Size the radius search to the working image
    config = DetectorConfig()
    scale = min(1.0, config.max_side / max(image.shape[:2]))
    min_r, max_r = suggest_radius_range(int(image.shape[1] * scale), int(image.shape[0] * scale))
    config = config.replace(min_radius=min_r, max_radius=max_r)

    print("Detecting controls...")
    detection = detect(image, config)
    print(f"Detected {len(detection)} circles via {detection.strategy}")

    transformer = CoordinateTransformer.from_detection(detection)
    for circle in detection:
        print(f"  {transformer.circle_to_normalized_rect(circle)}  score={circle.score:.0f}")

    # Visualize results in original pixels
    output = draw_circles(image, detection.to_original())
    output_path = "output/basic_detection.png"
    save_image(output, output_path)
    print(f"Results saved to {output_path}")


if __name__ == "__main__":
    main()
