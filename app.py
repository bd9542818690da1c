"""Development entry point for the bracket server."""

from flask import jsonify

from brackethub import create_app

app = create_app()


@app.route("/health")
def health_check():
    """Liveness probe. Does not touch the document store."""
    return jsonify({"status": "ok"}), 200


if __name__ == "__main__":
    app.run(debug=True, host="0.0.0.0", port=27272)  # nosec
