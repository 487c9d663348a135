import bz2
import os
import sys
import urllib.request

from .config import Settings
from .core.face_detection import FaceModel

DLIB_MODELS_URL = 'http://dlib.net/files'


def download_file(url, filename):
    print(f"Downloading {filename}...")
    compressed = filename + '.bz2'
    urllib.request.urlretrieve(url, compressed)
    with bz2.open(compressed, 'rb') as src, open(filename, 'wb') as dst:
        while True:
            chunk = src.read(1024 * 1024)
            if not chunk:
                break
            dst.write(chunk)
    os.remove(compressed)
    print(f"Downloaded {filename}")


def main(models_dir=None):
    models_dir = models_dir or Settings.from_env().models_dir
    # Create models directory if it doesn't exist
    os.makedirs(models_dir, exist_ok=True)

    # Detector, landmarker and descriptor network
    model_files = {
        filename: f'{DLIB_MODELS_URL}/{filename}.bz2'
        for filename in (FaceModel.DETECTOR_FILE, FaceModel.LANDMARKS_FILE, FaceModel.DESCRIPTOR_FILE)
    }

    # Download each model file
    for filename, url in model_files.items():
        filepath = os.path.join(models_dir, filename)
        if not os.path.exists(filepath):
            try:
                download_file(url, filepath)
            except Exception as e:
                print(f"Error downloading {filename}: {str(e)}")
                print(f"Please download the model files manually and place them in the '{models_dir}' directory:")
                for number, name in enumerate(model_files, start=1):
                    print(f"{number}. {name}")
                return False
    return True


def cli():
    sys.exit(0 if main() else 1)


if __name__ == "__main__":
    cli()
