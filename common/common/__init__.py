"""resource-hub 서비스들이 공유하는 공통 패키지."""
