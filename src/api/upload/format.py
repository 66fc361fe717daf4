from dataclasses import dataclass

from src.mediastore.reconciler import ReconciledItem, ReconcileResult

@dataclass
class UploadResponse:
    message: str
    filePaths: list[str]
    items: list[dict]

    @staticmethod
    def from_result(result: ReconcileResult) -> 'UploadResponse':
        return UploadResponse(
            message="Files uploaded successfully",
            filePaths=result.file_paths,
            items=[format_item(item) for item in result.items]
        )

def format_item(item: ReconciledItem) -> dict:
    return {
        "id": item.id,
        "order": item.order,
        "imageUrl": item.url,
        "fileType": item.content_type,
    }
