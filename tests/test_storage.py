from creator_growth.models import AnalysisRequest, AnalysisResponse
from creator_growth.storage import hash_ip


def test_hash_ip_is_stable_sha256():
    assert hash_ip("203.0.113.7") == hash_ip("203.0.113.7")
    assert len(hash_ip("203.0.113.7")) == 64
    assert hash_ip("203.0.113.7") != hash_ip("203.0.113.8")


def test_viewer_recorded_once(storage):
    assert storage.viewer_count() == 0
    storage.record_viewer(hash_ip("1.1.1.1"))
    storage.record_viewer(hash_ip("1.1.1.1"))
    storage.record_viewer(hash_ip("8.8.8.8"))
    assert storage.viewer_count() == 2


def test_save_and_list_history(storage, sample_analysis):
    analysis = AnalysisResponse.model_validate(sample_analysis)
    first = AnalysisRequest(niche="Tech", channelSize="Small", videoType="Long",
                            idea="A 10-minute tutorial on building a REST API in Go")
    second = AnalysisRequest(platform="TikTok", niche="Cooking", channelSize="Medium", videoType="Short",
                             youtubeUrl="https://youtu.be/dQw4w9WgXcQ")

    first_id = storage.save_analysis(first, analysis)
    second_id = storage.save_analysis(second, analysis)
    assert second_id > first_id

    history = storage.analysis_history()
    assert [entry.id for entry in history] == [second_id, first_id]
    assert history[0].platform == "TikTok"
    assert history[0].youtubeUrl == "https://youtu.be/dQw4w9WgXcQ"
    assert history[0].idea is None
    assert history[1].analysis["performancePrediction"]["potential"] == "Medium"
    assert history[1].createdAt is not None


def test_history_limit(storage, sample_analysis):
    analysis = AnalysisResponse.model_validate(sample_analysis)
    req = AnalysisRequest(niche="Tech", channelSize="Small", videoType="Long", transcript="hello world")
    for _ in range(3):
        storage.save_analysis(req, analysis)
    assert len(storage.analysis_history(limit=2)) == 2
